from __future__ import annotations
import logging, os, sys
from logging.handlers import RotatingFileHandler
from typing import Dict, Mapping

LOGGER_ROOT = "pinlab"

def sketch_extra(line_number: int) -> dict:
    """`extra=` payload that ties a log record to a line of the learner's sketch."""
    return {"sketch_line": line_number}

class SketchFormatter(logging.Formatter):
    """
    Adds %(shortname)s (last component of the logger name, e.g. TimelineExtractor)
    and %(sketch)s, which reads " @L7" when the record carries a sketch line.
    """
    def format(self, record: logging.LogRecord) -> str:
        record.shortname = record.name.rsplit('.', 1)[-1]
        ln = getattr(record, "sketch_line", 0)
        record.sketch = f" @L{ln}" if ln else ""
        return super().format(record)

def parse_module_levels(text: str | None) -> Dict[str, str]:
    """'runner=DEBUG, validator=warning' -> {'runner': 'DEBUG', 'validator': 'WARNING'}"""
    out: Dict[str, str] = {}
    for part in (text or "").split(","):
        name, sep, lvl = part.partition("=")
        if sep and name.strip() and lvl.strip():
            out[name.strip()] = lvl.strip().upper()
    return out

def apply_module_levels(module_levels: Mapping[str, str]) -> None:
    # keys are module names under pinlab, e.g. "runner" -> logger "pinlab.runner"
    for name, lvl in module_levels.items():
        logging.getLogger(f"{LOGGER_ROOT}.{name}").setLevel(lvl.upper())

def setup_logging(enabled: bool = True, level: str | int = "INFO", log_file: str | None = None,
                  module_levels: Mapping[str, str] | None = None) -> None:
    """
    Configure root logging once. Format: timestamp level [Class.func] message @Lline
    Console output goes to stderr so the CLI's [RUN]/[APP] lines on stdout stay clean.
    """
    if getattr(setup_logging, "_configured", False):
        return

    if not enabled:
        logging.disable(logging.CRITICAL)
        setup_logging._configured = True
        return

    logging.disable(logging.NOTSET)
    lvl = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    formatter = SketchFormatter(fmt="%(asctime)s %(levelname)s [%(shortname)s.%(funcName)s] %(message)s%(sketch)s",
                                datefmt="%H:%M:%S")

    sh = logging.StreamHandler(stream=sys.stderr)
    sh.setFormatter(formatter)
    handlers: list[logging.Handler] = [sh]
    if log_file:
        try:
            if os.path.dirname(log_file):
                os.makedirs(os.path.dirname(log_file), exist_ok=True)
            fh = RotatingFileHandler(log_file, maxBytes=512_000, backupCount=3)
            fh.setFormatter(formatter)
            handlers.append(fh)
        except OSError:
            # console only
            pass

    logging.basicConfig(level=lvl, handlers=handlers, force=True)
    apply_module_levels(module_levels or {})
    setup_logging._configured = True

def resolve_logging_from_env_and_cfg(cfg) -> tuple[bool, str, str | None, Dict[str, str]]:
    """
    enabled/level/file/module levels, env first, then cfg.logging.
    Env:
      PINLAB_LOGGING=1|0, PINLAB_LOG_LEVEL=DEBUG|INFO|..., PINLAB_LOG_FILE=/path/to/log,
      PINLAB_LOG_MODULES=runner=DEBUG,validator=WARNING
    Module levels from env are merged over the ones in the config file.
    """
    env_enabled = os.getenv("PINLAB_LOGGING")
    env_level, env_file = os.getenv("PINLAB_LOG_LEVEL"), os.getenv("PINLAB_LOG_FILE")
    lcfg = getattr(cfg, "logging", None)

    if env_enabled is not None:
        enabled = env_enabled.lower() not in ("0", "false", "no")
    else:
        enabled = True if lcfg is None else bool(lcfg.enabled)
    level = env_level or (str(lcfg.level) if lcfg is not None else "INFO")
    log_file = env_file or (lcfg.file if lcfg is not None else None)

    modules = {k: v.upper() for k, v in (lcfg.modules if lcfg is not None else {}).items()}
    modules.update(parse_module_levels(os.getenv("PINLAB_LOG_MODULES")))
    return enabled, level, log_file, modules

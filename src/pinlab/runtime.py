import os, yaml, logging
from dataclasses import dataclass
from typing import Dict, Optional
from pinlab.config import AppConfig
from pinlab.errors import ProgramError
from pinlab.extractor import TimelineExtractor
from pinlab.levels import Level, LevelBook, load_levels
from pinlab.parser import ProgramParser
from pinlab.runner import LiveRunner
from pinlab.timeline import Sequence
from pinlab.validator import SequenceValidator, ValidationResult
CONFIG_PATHS = ['config/config.yaml', 'config.yaml']

def load_config(path: str | None = None) -> AppConfig:
    for p in ([path] if path else []) + CONFIG_PATHS:
        if p and os.path.exists(p):
            with open(p, 'r') as f:
                return AppConfig.model_validate(yaml.safe_load(f) or {})
    return AppConfig()

@dataclass
class CheckResult:
    level_id: int
    target: Sequence
    candidate: Sequence
    validation: ValidationResult
    error: Optional[ProgramError] = None
    iterations: int = 0
    @property
    def passed(self) -> bool: return self.error is None and self.validation.matches

class Runtime:
    """Explicit wiring of parser, extractor, validator and live runner for one configuration."""
    def __init__(self, cfg: AppConfig, parser: ProgramParser, extractor: TimelineExtractor,
                 validator: SequenceValidator, levels: LevelBook):
        self.cfg = cfg; self.parser = parser; self.extractor = extractor; self.validator = validator; self.levels = levels
        self._targets: Dict[int, Sequence] = {}
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def target_sequence(self, level: Level) -> Sequence:
        # target programs are authored with the level, so their errors propagate
        if level.id not in self._targets:
            program = self.parser.parse(level.target_code)
            self._targets[level.id] = self.extractor.extract(program, iterations=level.validation_loops)
        return self._targets[level.id]

    def make_runner(self, **kwargs) -> LiveRunner:
        kwargs.setdefault('step_delay_ms', self.cfg.live.step_delay_ms)
        kwargs.setdefault('max_iterations', self.cfg.live.max_iterations)
        return LiveRunner(self.cfg.board.usable_pins, self.cfg.limits, **kwargs)

    def check(self, level: Level, source: str, live: bool = True, tolerance_ms: int | None = None,
              runner: LiveRunner | None = None) -> CheckResult:
        target = self.target_sequence(level)
        iterations = 0
        try:
            program = self.parser.parse(source)
            if live:
                run = (runner or self.make_runner()).run(program, max_iterations=level.validation_loops)
                iterations = run.iterations
                if run.error is not None:
                    raise run.error
                candidate = run.sequence
            else:
                candidate = self.extractor.extract(program, iterations=level.validation_loops)
                iterations = level.validation_loops if program.is_looping else 0
        except ProgramError as e:
            self._log.info("Level %s submission rejected: %s", level.id, e.message)
            return CheckResult(level.id, target, Sequence(), ValidationResult(), error=e, iterations=iterations)
        validation = self.validator.validate(target, candidate, tolerance_ms)
        return CheckResult(level.id, target, candidate, validation, iterations=iterations)

def build_runtime(cfg: AppConfig) -> Runtime:
    extractor = TimelineExtractor(cfg.board.usable_pins, cfg.limits)
    return Runtime(cfg, ProgramParser(), extractor, SequenceValidator(cfg.validation), load_levels(cfg.levels_path))

import os, sys, signal, argparse
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))
from pinlab.logging_config import setup_logging, resolve_logging_from_env_and_cfg
from pinlab.runtime import load_config, build_runtime

RUNNER = None
def handle_sig(sig, frame):
    if RUNNER is not None: RUNNER.stop()

def print_levels(rt):
    for lvl in rt.levels.all():
        print(f"{lvl.id:>3}  {lvl.name:<20} {lvl.difficulty:<13} {lvl.description}")

def on_statement(line_number, stmt, board):
    lit = " ".join(f"D{p}:{'#' if board[p].is_on else '.'}" for p in board)
    print(f"[RUN] line {line_number:>3}  {type(stmt).__name__:<16} {lit}")

def main(argv=None):
    global RUNNER
    ap = argparse.ArgumentParser(description="Check a sketch against a level's target pin timeline.")
    ap.add_argument("sketch", nargs="?", help="path to the learner's sketch (.ino)")
    ap.add_argument("--level", type=int, default=1)
    ap.add_argument("--config", default=None)
    ap.add_argument("--static", action="store_true", help="extract the sketch timeline instead of running it live")
    ap.add_argument("--tolerance", type=int, default=None, help="interval tolerance in ms")
    ap.add_argument("--list-levels", action="store_true")
    args = ap.parse_args(argv)

    cfg = load_config(args.config)
    setup_logging(*resolve_logging_from_env_and_cfg(cfg))
    rt = build_runtime(cfg)
    if args.list_levels:
        print_levels(rt); return 0
    level = rt.levels.get(args.level)
    if level is None:
        print(f"[APP] Unknown level {args.level}", file=sys.stderr); return 2
    if not args.sketch:
        ap.error("a sketch path is required")
    with open(args.sketch, "r", encoding="utf-8") as f:
        source = f.read()

    runner = None
    if not args.static:
        RUNNER = runner = rt.make_runner(on_statement=on_statement)
        signal.signal(signal.SIGINT, handle_sig); signal.signal(signal.SIGTERM, handle_sig)
        print(f"[APP] Running '{level.name}' live. Ctrl+C to stop.")
    res = rt.check(level, source, live=not args.static, tolerance_ms=args.tolerance, runner=runner)

    if res.error is not None:
        print(f"[APP] {res.error.kind.value}: {res.error.message}")
        return 2
    v = res.validation
    print(f"[APP] {'PASS' if res.passed else 'FAIL'}  score {v.score_percent}%  "
          f"({len(res.candidate)} events vs {len(res.target)} expected)")
    for d in v.differences:
        print(f"  - {d.message}")
    if not res.passed:
        for tip in rt.validator.analyze(res.target, res.candidate).suggestions:
            print(f"  * {tip}")
        if level.hint:
            print(f"  Hint: {level.hint}")
    return 0 if res.passed else 1

if __name__ == "__main__":
    sys.exit(main())

import argparse
import signal
import subprocess
import sys
from pathlib import Path


def build_commands(configs: list[str]) -> list[list[str]]:
    cmds = []
    for cam_idx, cfg in enumerate(configs):
        cfg_path = Path(cfg)
        if not cfg_path.exists():
            raise FileNotFoundError(f"Config not found: {cfg}")
        cmds.append([
            sys.executable, "-m", "calib_align.preprocess",
            "--config", str(cfg_path),
            "--camera-index", str(cam_idx),
        ])
    return cmds


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        description="Run tag detection for several cameras concurrently",
        epilog="Example: python -m calib_align.launch configs/cam0.yaml configs/cam1.yaml",
    )
    ap.add_argument("configs", nargs="+", help="One preprocess config per camera, in camera order")

    args = ap.parse_args(argv)
    cmds = build_commands(args.configs)

    procs: list[subprocess.Popen] = []

    def _terminate_all():
        """Terminate every worker still running."""
        for p in procs:
            if p.poll() is None:
                p.terminate()

    def _handle_signal(_sig, _frame):
        print("\n[launch] Received stop signal, terminating all workers...")
        _terminate_all()

    signal.signal(signal.SIGINT, _handle_signal)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle_signal)

    for i, cmd in enumerate(cmds, 1):
        print(f"[launch] Starting camera {i}/{len(cmds)}: {Path(args.configs[i - 1]).name}")
        procs.append(subprocess.Popen(cmd))

    try:
        exit_codes = [p.wait() for p in procs]
        max_code = max(exit_codes) if exit_codes else 0
        if max_code != 0:
            print(f"[launch] One or more cameras failed with exit code {max_code}")
        return max_code
    except KeyboardInterrupt:
        _terminate_all()
        return 130


if __name__ == "__main__":
    sys.exit(main())

import argparse
import sys

from .config import AlignConfig, load_config
from .session import AlignSession


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Align per-camera tag observations by timestamp")
    ap.add_argument("--config", help="Path to JSON/YAML config")

    ap.add_argument("--data-dirs", nargs="+", help="One record directory per camera")
    ap.add_argument("--camera-names", nargs="+")
    ap.add_argument("--method", choices=["auto", "pairwise", "multiway"])
    ap.add_argument("--precision", choices=["float32", "float64"])
    ap.add_argument("--out")
    ap.add_argument("--session-name")
    ap.add_argument("--keep-empty", action="store_true", help="Emit frames with no common markers")
    ap.add_argument("--drop-empty", action="store_true", help="Drop frames with no common markers")
    ap.add_argument("--detected-only", action="store_true", help="Ignore records of failed detections")
    ap.add_argument("--no-save-observations", action="store_true")

    return ap


def _apply_args(cfg: AlignConfig, args: argparse.Namespace) -> AlignConfig:
    keep_empty = None
    if args.keep_empty:
        keep_empty = True
    if args.drop_empty:
        keep_empty = False

    cfg.apply_overrides(
        data_dirs=args.data_dirs,
        camera_names=args.camera_names,
        method=args.method,
        precision=args.precision,
        output_root=args.out,
        session_name=args.session_name,
        keep_empty_intersections=keep_empty,
        detected_only=True if args.detected_only else None,
        save_observations=False if args.no_save_observations else None,
    )
    return cfg


def main(argv: list[str] | None = None) -> int:
    ap = _build_parser()
    args = ap.parse_args(argv)
    if args.keep_empty and args.drop_empty:
        ap.error("--keep-empty and --drop-empty are mutually exclusive")

    cfg = load_config(args.config) if args.config else AlignConfig()
    cfg = _apply_args(cfg, args)
    if cfg.camera_names is not None and len(cfg.camera_names) != len(cfg.data_dirs):
        ap.error("--camera-names needs one name per data dir")

    summary = AlignSession(cfg).run()
    print(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())

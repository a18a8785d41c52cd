import json
from pathlib import Path
from time import strftime


class SessionStorage:
    """Timestamped output directory for one alignment run.

    A session directory is never reused: if the timestamped name is taken
    (two runs in the same second), a numeric suffix is appended.
    """

    def __init__(self, root: str, name: str = "session"):
        self.root = Path(root)
        self.name = name
        self.session_dir = None
        self.logs_dir = None

    def begin(self) -> str:
        sid = f"{self.name}_{strftime('%Y%m%d_%H%M%S')}"
        self.root.mkdir(parents=True, exist_ok=True)
        candidate = self.root / sid
        n = 1
        while True:
            try:
                candidate.mkdir()
                break
            except FileExistsError:
                candidate = self.root / f"{sid}_{n}"
                n += 1
        self.session_dir = candidate
        self.logs_dir = self.session_dir / "logs"
        self.logs_dir.mkdir()
        return str(self.session_dir)

    def write_manifest(self, meta: dict):
        with open(self.session_dir / "config.json", "w") as fp:
            json.dump(meta, fp, indent=2)

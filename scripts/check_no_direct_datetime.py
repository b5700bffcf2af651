from __future__ import annotations

import re
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
PACKAGE_DIR = ROOT / "precalc"
CLOCK_MODULE = "precalc/core/time_provider.py"

# Deadlines and offer windows must be computed from an injected TimeProvider.
CLOCK_CALLS = re.compile(r"\b(?:datetime\.(?:now|utcnow|today)|date\.today)\(")


def find_clock_calls(package_dir: Path = PACKAGE_DIR) -> list[tuple[str, int, str]]:
    hits: list[tuple[str, int, str]] = []
    for file_path in sorted(package_dir.rglob("*.py")):
        if file_path.as_posix().endswith(CLOCK_MODULE):
            continue
        for line_no, line in enumerate(file_path.read_text(encoding="utf-8").splitlines(), start=1):
            if CLOCK_CALLS.search(line):
                hits.append((file_path.relative_to(package_dir.parent).as_posix(), line_no, line.strip()))
    return hits


def main() -> int:
    hits = find_clock_calls()
    if not hits:
        print("precalc/ reads the clock only through TimeProvider.")
        return 0
    print("Read the clock through precalc.core.time_provider instead of:")
    for path, line_no, line in hits:
        print(f" - {path}:{line_no}: {line}")
    return 1


if __name__ == "__main__":
    sys.exit(main())

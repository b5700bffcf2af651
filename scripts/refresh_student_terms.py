"""Recomputes the stored pace, track and first course for every student in a term.

Usage: ``python scripts/refresh_student_terms.py [TERM_KEY]`` (defaults to the active term).
"""
from pathlib import Path
import logging
import sys


ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from precalc.cache import DataCache
from precalc.db import SessionLocal
from precalc.services.pace_track_service import refresh_student_terms


def main(argv: list[str]) -> int:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s %(message)s')
    term_key = argv[1] if len(argv) > 1 else None
    db = SessionLocal()
    try:
        counts = refresh_student_terms(DataCache(db=db), term_key)
    finally:
        db.close()
    print(f"kept={counts['kept']} removed={counts['removed']} skipped={counts['skipped']}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main(sys.argv))

from pathlib import Path
import sys

# Ensure parent (scraper root) is on path when executing this file directly
PARENT = Path(__file__).resolve().parent.parent
if str(PARENT) not in sys.path:
    sys.path.insert(0, str(PARENT))

from rolescout.cli import main

if __name__ == '__main__':
    sys.exit(main())

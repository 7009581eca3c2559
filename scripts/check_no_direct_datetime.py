from __future__ import annotations

import re
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
PACKAGE_DIR = ROOT / "drivedesk"
ALLOWED = ("drivedesk/core/time_provider.py",)

PATTERNS = (
    r"\bdatetime\.now\(",
    r"\bdatetime\.utcnow\(",
    r"\bdate\.today\(",
    r"\bdatetime\.today\(",
)
COMPILED = [re.compile(pattern) for pattern in PATTERNS]


def find_violations(package_dir: Path = PACKAGE_DIR) -> list[tuple[str, int, str]]:
    """Lines reading the wall clock outside ``TimeProvider``."""
    violations: list[tuple[str, int, str]] = []
    for file_path in sorted(package_dir.rglob("*.py")):
        if file_path.as_posix().endswith(ALLOWED):
            continue
        for idx, line in enumerate(file_path.read_text(encoding="utf-8").splitlines(), start=1):
            if any(regex.search(line) for regex in COMPILED):
                violations.append((file_path.relative_to(ROOT).as_posix(), idx, line.strip()))
    return violations


def main() -> int:
    violations = find_violations()
    if violations:
        print("Read the clock through drivedesk.core.time_provider:")
        for path, line_no, line in violations:
            print(f" - {path}:{line_no}: {line}")
        return 1

    print("No direct clock reads in drivedesk/.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

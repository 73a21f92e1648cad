from __future__ import annotations

import sys
from typing import Sequence

from fsm_simulator.cli import run


def main(argv: Sequence[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    return run(argv)


if __name__ == "__main__":
    raise SystemExit(main())

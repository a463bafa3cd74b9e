"""Console entrypoint bridging to :mod:`grpcexp.app`."""

from __future__ import annotations

import sys
from typing import Optional

from .app import main as app_main


def main(argv: Optional[list[str]] = None) -> int:
    """Delegate execution to :func:`grpcexp.app.main`."""

    return app_main(argv)


if __name__ == "__main__":
    sys.exit(main())

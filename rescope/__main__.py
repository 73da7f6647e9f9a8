"""Module entry-point for ``python -m rescope``."""

from .runtime import main


def _run() -> None:
    import sys

    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    _run()

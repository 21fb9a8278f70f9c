"""Allow running as python -m dyntranslate."""

from dyntranslate.cli import app


def main() -> None:
    app()


main()

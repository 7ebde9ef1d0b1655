"""Entry point for ``python -m augent.cli`` and the ``augent`` console script."""

from augent.cli.main import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()

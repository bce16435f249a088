"""Entry point for ``python -m courier``."""

from courier.app.cli import cli


def main() -> None:
    """Run the courier command line."""
    cli(prog_name="courier")


if __name__ == "__main__":
    main()

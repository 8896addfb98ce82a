"""CLI entry point for the prediction market AMM.

All command logic lives in the cli subpackage.
"""

from prediction_amm.apps.amm.cli import app

__all__ = ["app", "main"]


def main() -> None:
    """Run the AMM CLI application."""
    app()


if __name__ == "__main__":
    main()

"""Entry point for ``python -m stickerlab.cli_entry``."""

from .cli import main

__all__ = ["main"]

if __name__ == "__main__":
    main()

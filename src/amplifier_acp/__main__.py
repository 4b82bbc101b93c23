"""Entry point for ``python -m amplifier_acp``."""

from .cli import main

if __name__ == "__main__":
    main()

"""Allow ``python -m shadowtypes``."""

from .cli import main

if __name__ == "__main__":
    main()

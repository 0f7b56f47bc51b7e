"""Entry point for ``python -m relay``."""

from relay.server import main

if __name__ == "__main__":
    main()

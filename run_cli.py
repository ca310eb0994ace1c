"""Entry point for running the CLI."""
import sys
from formmemory.cli.main import main

if __name__ == "__main__":
    sys.exit(main())

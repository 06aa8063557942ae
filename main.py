"""
Main entry point for spicat.

Runs the command line tool from a source checkout without installing it:

    python main.py /dev/spidev0.0 --in message.bin --format hex --repeat 10
"""

import sys

from spicat.cli import main


if __name__ == "__main__":
    sys.exit(main())

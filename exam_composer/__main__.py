"""
Entry point for running the package as a module: python -m exam_composer
"""

import sys
from exam_composer.cli import main

if __name__ == "__main__":
    sys.exit(main())

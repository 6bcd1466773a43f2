"""
Run g2g as a module.

Usage:
    python -m g2g [commit message]
"""

from .main import main

if __name__ == "__main__":
    main()

"""
Run the CLI directly.

Usage:
    python -m mediashrink serve
    python -m mediashrink compress clip.mp4
"""

from .main import main

if __name__ == "__main__":
    main()

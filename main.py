"""
Clipster - AI Clipboard Assistant

Run from a source checkout: python main.py
"""

from clipster.app import main


if __name__ == "__main__":
    main()

"""
Main entry point for ng-analyzer when run as a module.

Allows execution via: python -m ng_analyzer

ng_analyzer/src/ng_analyzer/__main__.py
"""

from .cli import main

if __name__ == "__main__":
    main()

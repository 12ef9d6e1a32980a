"""
Allow running the package directly: python -m tilebrot
"""
from .app import main

main()

# app.py
"""
Application entry point.

Usage:
  python app.py calc --gross 100 --patti 5 --boxes 2 --rate 50 --majuri 500
  python app.py login --mobile 9876543210
  python app.py bills recent --limit 20
  python app.py report monthly --year 2024 --month 3
"""

from bananabill.adapters.cli import main

if __name__ == "__main__":
    main()

"""Allow `python -m bali_report`."""

from bali_report.cli import main

if __name__ == "__main__":
    main()

"""
Command-line entrypoint for the education spending vs GDP growth pipeline.

Runs one stage, or all four in order:

    python run_pipeline.py --stage 1   # clean raw WDI extract
    python run_pipeline.py --stage 2   # exploratory figures
    python run_pipeline.py --stage 3   # fit OLS models and random forest
    python run_pipeline.py --stage 4   # evaluate on the held-out test set
    python run_pipeline.py             # all stages

The raw extract is expected at data/raw/wdi_education_growth_2000_2024.csv.
"""

import sys

from edu_growth.pipeline import main


if __name__ == "__main__":
    sys.exit(main())

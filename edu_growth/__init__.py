"""
Education spending vs GDP growth analysis pipeline.

This package exposes reusable components for:
- Configuration and artifact locations (`edu_growth.config`)
- Reshaping, cleaning and trimming WDI data (`edu_growth.data`)
- The model-ready dataset and train/test split (`edu_growth.dataset`)
- OLS and random forest fitting (`edu_growth.models`)
- Held-out evaluation (`edu_growth.evaluate`)
- Exploratory figures (`edu_growth.eda`)
- The stage runner (`edu_growth.pipeline`)
"""

__version__ = "0.1.0"

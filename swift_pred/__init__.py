# SWIFT spatial prediction
"""
Prediction of future community-level trachoma infection prevalence
from serological, molecular, clinical and geospatial data.

Project Structure:
    swift_pred/
    ├── data/          - Field results and community prevalence
    ├── covariates/    - Geospatial covariate extraction
    ├── features/      - Predictor sets and modeling dataset
    ├── evaluation/    - Cross-validation folds and metrics
    ├── models/        - Learner library and super learner
    ├── prediction.py  - Prediction tasks and batch runs
    └── visualization/ - Plotting utilities
"""

__version__ = "0.1.0"

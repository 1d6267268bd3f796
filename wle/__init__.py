"""
Weight Lifting Exercise Classifier
==================================

A machine learning pipeline that classifies how a barbell lift was performed
(classes A-E) from wearable accelerometer and gyroscope readings.

Modules:
    - downloader: Fetch the raw CSV datasets if they are not cached locally
    - data_loader: Configuration, CSV ingestion and validation
    - preprocessing: Column cleaning and stratified train/validation split
    - eda: Exploratory summaries and figures
    - model: Cross-validated model wrapper with on-disk caching
    - selection: Comparison of candidate models by CV accuracy
    - tuning: Hyperparameter grid search for the selected model
    - evaluation: Confusion matrix and accuracy report on held-out data
    - prediction: Final inference on the evaluation dataset
"""

__version__ = "1.0.0"
__author__ = "Predictive Analytics Team"

"""Signal screener: sentiment-driven ticker scoring, classification and alerting."""

__version__ = "1.0.0"

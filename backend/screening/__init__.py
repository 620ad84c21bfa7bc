"""Candidate résumé screening pipeline"""

__version__ = "1.0.0"

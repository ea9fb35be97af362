"""
PR Scorecard: pull request velocity and quality metrics for GitHub repositories.
"""

__version__ = "0.1.0"

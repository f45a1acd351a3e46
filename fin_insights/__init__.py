"""
Financial Insights - AI Package

The AI layer of a small-business / freelancer finance application:
financial insights, income prediction, spending anomaly detection,
weekly digests and transaction categorization.

DESIGN PRINCIPLES:
1. Never fail because ONE provider is down: cascade through all of them
2. Every provider answer is validated; incomplete answers are failures
3. No data, no call: empty requests never reach a provider
4. Every attempt is auditable
"""

__version__ = "1.0.0"
__author__ = "Financial Insights Team"

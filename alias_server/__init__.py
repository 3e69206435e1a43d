"""
alias-server history sync — reconciles a locally processed ledger against Chronik.

Fetches paginated transaction history for the alias registration address from
a Chronik indexer and works out which transactions have not been processed
locally yet, fetching only as many pages as needed.
"""

__version__ = "0.1.0"

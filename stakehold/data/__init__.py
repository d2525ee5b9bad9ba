"""External data adapters: CSV transaction import and quote refresh."""

"""agentchain: declarative agent pipelines with a persisted task ledger."""

__version__ = "0.1.0"

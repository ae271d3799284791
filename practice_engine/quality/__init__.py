"""Exercise quality feedback loop."""

from practice_engine.quality.ledger import QualityLedger, RatingOutcome

__all__ = ["QualityLedger", "RatingOutcome"]

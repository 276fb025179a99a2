from ledger_app.posting.engine import post_journal_entry, PostingResult

__all__ = ["post_journal_entry", "PostingResult"]

"""
Bracket engine services.

Each public operation (record_result, update_score, undo_last_result,
late_entry, rebuy):
- takes a Session plus plain ids, never HTTP objects
- locks the tournament row and runs as one transaction
- raises a BracketError subclass instead of returning error codes

bracket_view and ledger are read-only / pure and never open a transaction.
"""

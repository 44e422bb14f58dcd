"""
Compass analysis engine.
Fetches per-category organization analyses from the Compass API, folds them
into one canonical record, and keeps a local history of saved analyses.
"""

class InvalidInput(ValueError):
    """Raised for caller contract violations: negative scores, bad records, negative subtotals."""

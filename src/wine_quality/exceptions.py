class DataFormatError(ValueError):
    """Input file is missing expected columns or holds non-numeric values."""


class FitError(RuntimeError):
    """A classifier configuration failed to fit or converge."""


class SchemaMismatchError(ValueError):
    """A fitted recipe was applied to data with a different column set."""

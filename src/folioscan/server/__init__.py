"""HTTP session service around the extraction pipeline."""

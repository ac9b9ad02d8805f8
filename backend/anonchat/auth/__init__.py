"""Anonymous identity issuance."""

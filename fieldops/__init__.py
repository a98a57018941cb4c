"""fieldops: security audit capture for the contractor field-services API."""

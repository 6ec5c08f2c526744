"""AWS provider: instance metadata and EC2 API access."""

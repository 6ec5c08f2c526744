"""Local host services: mounting and address association."""

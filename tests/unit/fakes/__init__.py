"""Test doubles for ec2attach collaborators."""

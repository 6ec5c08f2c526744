"""ec2attach - attach, mount and address the running EC2 instance."""

__version__ = "0.1.0"

from listing_publisher.cli.publish import cli

__all__ = ["cli"]

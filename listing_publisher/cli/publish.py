# listing_publisher/cli/publish.py
import json
import logging
import sys
from typing import Any, Dict

import click

from listing_publisher.core.config import get_settings
from listing_publisher.core.enums import SubmissionStatus
from listing_publisher.core.logging_config import configure_logging
from listing_publisher.dependencies import build_listing_service
from listing_publisher.schemas.listing import ListingRequest
from listing_publisher.services.listing_service import ListingService

logger = logging.getLogger(__name__)


def publish_with_relogin(service: ListingService, request: ListingRequest) -> Dict[str, Any]:
    """Publish; on an expired session log in once and resubmit once."""
    result = service.publish(request)
    if result["status"] != SubmissionStatus.SESSION_EXPIRED.value:
        return result

    logger.info(f"Session for {request.platform_id} expired, logging in again")
    login_result = service.login(request.platform_id)
    if not login_result["success"]:
        logger.error(f"Re-login to {request.platform_id} failed: {login_result['message']}")
        return result
    return service.publish(request)


def _parse_attributes(values) -> Dict[str, str]:
    attributes = {}
    for value in values:
        if "=" not in value:
            raise click.BadParameter(f"expected key=value, got '{value}'", param_hint="--attr")
        key, val = value.split("=", 1)
        attributes[key.strip()] = val.strip()
    return attributes


@click.group()
@click.pass_context
def cli(ctx):
    """Publish listings to marketplace platforms."""
    if ctx.obj is None:
        settings = get_settings()
        configure_logging(settings.LOG_LEVEL)
        ctx.obj = build_listing_service(settings)


@cli.command()
@click.argument('platform')
@click.pass_obj
def login(service: ListingService, platform):
    """Log in to PLATFORM and cache the session."""
    result = service.login(platform)
    if not result["success"]:
        click.echo(f"Error: {result['message']}", err=True)
        sys.exit(1)
    click.echo(result["message"])


@cli.command()
@click.argument('platform')
@click.pass_obj
def status(service: ListingService, platform):
    """Show whether a session is cached for PLATFORM."""
    result = service.status(platform)
    if not result["success"]:
        click.echo(f"Error: {result['message']}", err=True)
        sys.exit(1)
    click.echo(json.dumps(result, indent=2))


@cli.command()
@click.argument('platform')
@click.option('--subject-id', required=True, help='Catalog id of the item')
@click.option('--title', required=True, help='Listing title')
@click.option('--description', default="", help='Listing description')
@click.option('--price', required=True, type=float, help='Price in whole currency units')
@click.option('--image', 'images', multiple=True, help='Blob key of an image (repeatable, in order)')
@click.option('--attr', 'attrs', multiple=True, help='Platform-specific attribute as key=value (repeatable)')
@click.option('--no-relogin', is_flag=True, help='Do not log in again when the session has expired')
@click.pass_obj
def publish(service: ListingService, platform, subject_id, title, description, price, images, attrs, no_relogin):
    """Publish one listing on PLATFORM."""
    request = ListingRequest(
        platform_id=platform,
        subject_id=subject_id,
        title=title,
        description=description,
        price=price,
        image_references=images,
        attributes=_parse_attributes(attrs),
    )
    if no_relogin:
        result = service.publish(request)
    else:
        result = publish_with_relogin(service, request)

    click.echo(json.dumps(result, indent=2, ensure_ascii=False))
    if not result["success"]:
        sys.exit(1)


if __name__ == "__main__":
    cli()

"""License mode: activate, deactivate, check and show the license."""

import typer

from .shared import console, get_service, logger, print_license_result


def activate(license_key: str = typer.Argument(..., help="License key")) -> None:
    """Activate a license key for this site."""
    logger.info("license.cli.activate")
    print_license_result(get_service().activate_license(license_key))


def deactivate() -> None:
    """Deactivate the license locally (remote failures are ignored) and disable sync."""
    logger.info("license.cli.deactivate")
    print_license_result(get_service().deactivate_license())


def check() -> None:
    """Re-validate the stored license against the license server."""
    print_license_result(get_service().check_license())


def show() -> None:
    """Print the stored license state (key masked)."""
    info = get_service().license_info()
    console.print("\n[bold]License[/bold]")
    console.print(f"  Key: {info.key or '[dim]none[/dim]'}")
    console.print(f"  Status: {info.status.value}")
    console.print(f"  Valid: {'yes' if info.is_valid else 'no'}")
    if info.remaining_days is not None:
        console.print(f"  Days remaining: {info.remaining_days}")
    elif info.data is not None and info.is_valid:
        console.print("  Days remaining: [dim]lifetime[/dim]")
    if info.grace_days_remaining is not None:
        console.print(f"  [yellow]Grace period: {info.grace_days_remaining} days remaining[/yellow]")
    if info.last_check_at is not None:
        console.print(f"  Last check: {info.last_check_at.isoformat()}")

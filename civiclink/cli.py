"""CLI entry point for CivicLink."""

import json
import logging
from typing import Annotated, NoReturn

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from civiclink.config import Settings
from civiclink.core.exceptions import CivicLinkError
from civiclink.core.models import Account, FollowEdge
from civiclink.core.storage import SocialRepository

app = typer.Typer(
    name="civiclink",
    help="Manage CivicLink accounts and follow relationships.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

_MAX_BIO_DISPLAY = 40


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    """Load .env and configure logging."""
    load_dotenv()
    logger = logging.getLogger("civiclink")
    logger.handlers = [RichHandler(console=err_console, show_path=False)]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def get_repo() -> SocialRepository:
    """Open the repository described by the environment."""
    try:
        settings = Settings.from_env()
    except CivicLinkError as e:
        fail(str(e))
    return SocialRepository(
        settings.db_path,
        bcrypt_rounds=settings.bcrypt_rounds,
        timeout=settings.db_timeout,
    )


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    err_console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(code=1)


def require_account(repo: SocialRepository, username: str) -> Account:
    account = repo.users.find_by_username(username)
    if account is None:
        fail(f"No user named '{username}'")
    return account


def format_bio(bio: str | None) -> str:
    if not bio:
        return ""
    if len(bio) <= _MAX_BIO_DISPLAY:
        return bio
    return bio[: _MAX_BIO_DISPLAY - 3] + "..."


def print_edges(edges: list[FollowEdge], output_json: bool, empty: str) -> None:
    if output_json:
        print(json.dumps([edge.to_dict() for edge in edges]))
        return
    if not edges:
        console.print(empty)
        return
    for edge in edges:
        console.print(
            f"[cyan]{edge.username}[/cyan] (#{edge.follower_id}) -> #{edge.followed_id}"
        )


@app.command()
def init() -> None:
    """Create the database and schema if they do not exist."""
    try:
        with get_repo() as repo:
            repo.get_stats()
            console.print(f"[green]Database ready:[/green] {repo.db_path}")
    except CivicLinkError as e:
        fail(str(e))


@app.command("create-user")
def create_user(
    username: Annotated[str, typer.Argument(help="Unique username")],
    password: Annotated[
        str, typer.Option(prompt=True, hide_input=True, confirmation_prompt=True, help="Password")
    ],
    rep: Annotated[bool, typer.Option("--rep", help="Mark as a representative")] = False,
    first_name: Annotated[str | None, typer.Option("--first-name")] = None,
    last_name: Annotated[str | None, typer.Option("--last-name")] = None,
    zipcode: Annotated[str | None, typer.Option("--zipcode")] = None,
    state: Annotated[str | None, typer.Option("--state")] = None,
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Create an account."""
    try:
        with get_repo() as repo:
            account = repo.users.create(
                username, password, rep, first_name, last_name, zipcode, state
            )
    except CivicLinkError as e:
        fail(str(e))

    if output_json:
        print(json.dumps(account.to_dict()))
    else:
        kind = "representative" if account.is_rep else "user"
        console.print(f"[green]Created {kind}[/green] [cyan]{account.username}[/cyan] (#{account.id})")


@app.command()
def users(
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """List all accounts."""
    try:
        with get_repo() as repo:
            accounts = repo.users.list()
    except CivicLinkError as e:
        fail(str(e))

    if output_json:
        print(json.dumps([account.to_dict() for account in accounts]))
        return
    if not accounts:
        console.print("No users yet")
        return

    table = Table("ID", "Username", "Name", "Rep", "State", "Bio")
    for account in accounts:
        table.add_row(
            str(account.id),
            account.username,
            account.display_name,
            "yes" if account.is_rep else "",
            account.state or "",
            format_bio(account.bio),
        )
    console.print(table)


@app.command()
def show(
    username: Annotated[str, typer.Argument(help="Username to show")],
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show one account."""
    try:
        with get_repo() as repo:
            account = require_account(repo, username)
    except CivicLinkError as e:
        fail(str(e))

    if output_json:
        print(json.dumps(account.to_dict()))
        return
    console.print(f"[bold cyan]{account.username}[/] (#{account.id})")
    for key, value in account.to_dict().items():
        if key in ("id", "username") or value in (None, ""):
            continue
        console.print(f"  {key}: {value}")


@app.command("check-password")
def check_password(
    username: Annotated[str, typer.Argument(help="Username to check")],
    password: Annotated[str, typer.Option(prompt=True, hide_input=True, help="Password")],
) -> None:
    """Check a username/password pair (exit code 1 on mismatch)."""
    try:
        with get_repo() as repo:
            account = repo.users.authenticate(username, password)
    except CivicLinkError as e:
        fail(str(e))

    if account is None:
        fail("Invalid username or password")
    console.print(f"[green]OK[/green] {account.username} (#{account.id})")


@app.command()
def bio(
    username: Annotated[str, typer.Argument(help="Username to update")],
    text: Annotated[str, typer.Argument(help="New bio")],
) -> None:
    """Replace an account's bio."""
    try:
        with get_repo() as repo:
            account = require_account(repo, username)
            updated = repo.users.update_bio(account.id, text)
    except CivicLinkError as e:
        fail(str(e))

    if updated is None:
        fail(f"No user named '{username}'")
    console.print(f"[green]Updated bio for[/green] [cyan]{updated.username}[/cyan]")


@app.command()
def follow(
    follower: Annotated[str, typer.Argument(help="Username who follows")],
    followed: Annotated[str, typer.Argument(help="Username to follow")],
) -> None:
    """Make one account follow another."""
    try:
        with get_repo() as repo:
            source = require_account(repo, follower)
            target = require_account(repo, followed)
            created = repo.followers.follow_user(source.id, target.id, source.username)
    except CivicLinkError as e:
        fail(str(e))

    if created:
        console.print(f"[green]{follower} now follows {followed}[/green]")
    else:
        console.print(f"[dim]{follower} already follows {followed}[/dim]")


@app.command()
def unfollow(
    follower: Annotated[str, typer.Argument(help="Username who follows")],
    followed: Annotated[str, typer.Argument(help="Username to stop following")],
) -> None:
    """Remove a follow relationship."""
    try:
        with get_repo() as repo:
            source = require_account(repo, follower)
            target = require_account(repo, followed)
            removed = repo.followers.unfollow_user(source.id, target.id)
    except CivicLinkError as e:
        fail(str(e))

    if removed:
        console.print(f"[green]{follower} no longer follows {followed}[/green]")
    else:
        console.print(f"[dim]{follower} was not following {followed}[/dim]")


@app.command()
def followers(
    username: Annotated[str, typer.Argument(help="Username")],
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show who follows an account (who follows this?)."""
    try:
        with get_repo() as repo:
            account = require_account(repo, username)
            edges = repo.followers.get_followers(account.id)
    except CivicLinkError as e:
        fail(str(e))

    print_edges(edges, output_json, f"Nobody follows '[cyan]{username}[/cyan]'")


@app.command()
def following(
    username: Annotated[str, typer.Argument(help="Username")],
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show which accounts an account follows (what does this follow?)."""
    try:
        with get_repo() as repo:
            account = require_account(repo, username)
            edges = repo.followers.get_followed(account.id)
    except CivicLinkError as e:
        fail(str(e))

    print_edges(edges, output_json, f"'[cyan]{username}[/cyan]' follows nobody")


@app.command()
def stats(
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show store statistics."""
    try:
        with get_repo() as repo:
            result = repo.get_stats()
    except CivicLinkError as e:
        fail(str(e))

    if output_json:
        print(json.dumps(result.to_dict()))
    else:
        console.print(f"Users: {result.users}")
        console.print(f"Representatives: {result.representatives}")
        console.print(f"Follows: {result.follows}")


@app.command()
def reset(
    yes: Annotated[bool, typer.Option("--yes", help="Confirm deleting everything")] = False,
) -> None:
    """Delete every account and follow edge."""
    if not yes:
        fail("Refusing to reset without --yes")
    try:
        with get_repo() as repo:
            repo.clear()
    except CivicLinkError as e:
        fail(str(e))
    console.print("[green]All data deleted[/green]")


if __name__ == "__main__":
    app()

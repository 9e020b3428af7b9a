"""review command: list changed files split into Seen and Unseen."""

from __future__ import annotations

import click
from rich.console import Console

from diffmark_cli.render import sections_tree
from diffmark_cli.session import review_run

console = Console()


@click.command("review")
@click.pass_context
def review_cmd(ctx):
    """List the files changed on this branch, split into Seen and Unseen.

    A file that is partly reviewed appears in both sections. In by-commit
    mode files are grouped under the commit that changed them.
    """
    with review_run(ctx) as run:
        session = run.session
        console.print(sections_tree(session))

        total = seen = 0
        counted = set()
        for entry in session.entries:
            cache_key = (entry.filename, entry.commit_hash)
            if cache_key in counted:
                continue
            counted.add(cache_key)
            content_ids = session.ensure_content_ids(entry)
            total += len(content_ids)
            seen += session.state.seen_count(session.get_entry_key(entry), content_ids)

        style = "green" if total and seen == total else "yellow"
        console.print(f"\n[{style}]{seen} of {total} hunks seen.[/{style}]")

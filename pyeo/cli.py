"""CLI interface for editing objects in cloud storage."""

import logging
from typing import Any, Optional

import click

from . import __version__
from .config import config
from .editor import resolve_editor
from .exceptions import EoConfigError, EoError, EoWatchError
from .output import OutputFormatter
from .storage import create_storage
from .sync import SyncSession
from .uri import resolve_object_ref

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        # Enable debug logging for pyeo modules
        logging.getLogger("pyeo").setLevel(logging.DEBUG)
    else:
        # Set default logging level to WARNING to suppress debug/info messages
        logging.basicConfig(level=logging.WARNING)


@click.command()
@click.option(
    "--storage",
    "-s",
    type=click.Choice(["s3", "gcs"], case_sensitive=False),
    default=None,
    help="Cloud storage provider (s3 for AWS S3, gcs for Google Cloud Storage)",
)
@click.option("--bucket", "-b", help="Bucket name (mutually exclusive with --uri)")
@click.option("--key", "-k", help="Object key (mutually exclusive with --uri)")
@click.option("--uri", "-u", help="Object URI, e.g. s3://bucket/key or gs://bucket/key")
@click.option("--region", "-r", help="AWS region (only used for S3)")
@click.option(
    "--file-path",
    "-f",
    type=click.Path(dir_okay=False),
    help="Local file to use as working copy instead of a temp file",
)
@click.option(
    "--debounce",
    "-d",
    type=click.IntRange(min=0),
    default=None,
    help="Debounce writes interval in milliseconds (default: 500)",
)
@click.option(
    "--max-wait",
    type=click.IntRange(min=0),
    default=None,
    help="Upload at least this often (ms) while edits keep arriving",
)
@click.option(
    "--max-retries",
    type=click.IntRange(min=0),
    default=None,
    help="Retries for uploads failing with a transient error (default: 3)",
)
@click.option("--editor", "-e", help="Editor command (default: $VISUAL, $EDITOR, vim)")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__, prog_name="eo")
@click.pass_context
def main(  # noqa: C901
    ctx: Any,
    storage: Optional[str],
    bucket: Optional[str],
    key: Optional[str],
    uri: Optional[str],
    region: Optional[str],
    file_path: Optional[str],
    debounce: Optional[int],
    max_wait: Optional[int],
    max_retries: Optional[int],
    editor: Optional[str],
    quiet: bool,
    verbose: bool,
) -> None:
    """eo - edit files directly in cloud object storage.

    Downloads the object, opens it in your editor and uploads every saved
    change until the editor exits.
    """
    _configure_logging(verbose)
    out = OutputFormatter(quiet=quiet)

    if uri and (bucket or key):
        raise click.UsageError("--uri cannot be combined with --bucket or --key")
    if key and not bucket:
        raise click.UsageError("--key requires --bucket")
    if not uri and not (bucket and key):
        raise click.UsageError("Either --uri or both --bucket and --key are required")

    try:
        ref = resolve_object_ref(
            storage=storage or (None if uri else config.storage),
            uri=uri,
            bucket=bucket,
            key=key,
            region=region or config.region,
        )
        debounce_ms = debounce if debounce is not None else config.debounce_ms
        retries = max_retries if max_retries is not None else config.max_retries
        retry_delay = config.retry_delay
        if max_wait is not None and max_wait < debounce_ms:
            raise click.UsageError("--max-wait must not be shorter than --debounce")
        storage_client = create_storage(ref.backend, config, region=ref.region)
    except EoConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    editor_command = editor or resolve_editor()
    logger.debug(
        "Editing %s with '%s' (debounce=%dms)", ref, editor_command, debounce_ms
    )

    session = SyncSession(
        storage_client,
        ref,
        file_path=file_path,
        debounce=debounce_ms / 1000,
        max_wait=max_wait / 1000 if max_wait is not None else None,
        editor_command=editor_command,
        output=out,
        max_retries=retries,
        retry_delay=retry_delay,
    )

    try:
        result = session.run()
    except KeyboardInterrupt:
        out.warning("\nEdit cancelled by user")
        ctx.exit(130)  # Standard exit code for SIGINT
    except EoWatchError as e:
        out.error(f"Cannot sync changes: {e}")
        ctx.exit(1)
    except EoError as e:
        out.error(str(e))
        ctx.exit(1)
    finally:
        storage_client.close()

    summary_items = [("Uploads", str(result.uploads))]
    if result.failed_uploads:
        summary_items.append(("Failed uploads", str(result.failed_uploads)))
    out.print_summary(f"Session for {ref}", summary_items)

    if result.unsynced and session.working_copy is not None:
        out.warning(
            f"The last changes could not be uploaded to {ref}. "
            f"They were kept in {session.working_copy.path}"
        )
    elif result.uploads:
        out.success(f"All changes synced to {ref}")

    if not result.succeeded:
        out.error("Editor process exited with non-zero status.")
        ctx.exit(1)


if __name__ == "__main__":
    main()

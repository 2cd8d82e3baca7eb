r"""Mirror one model folder of a ModelScope repository into a local directory.

Files already fetched at the same size and revision are skipped, so the command
can be re-run to resume an interrupted download.
"""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Callable, List, Optional

from tqdm import tqdm

from ModelMirror.domain.entities import DownloadRequest
from ModelMirror.domain.errors import MirrorError
from ModelMirror.domain.path_config import MirrorConfig
from ModelMirror.frameworks_drivers.logging.csv_logger import get_csv_logger
from ModelMirror.interface_adapters.controllers import download_controller


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Mirror a model folder from a ModelScope repository to local storage.')
    parser.add_argument('--repo', help='Repository path on the hub, e.g. owner/name.')
    parser.add_argument('--model-id', help='Name of the top-level folder inside the repository to mirror.')
    parser.add_argument('--dest', help='Local destination root (default: MODELSCOPE_DOWNLOAD_ROOT or ~/Documents).')
    parser.add_argument('--revision', default='', help='Revision used for directory listings (default: latest).')
    parser.add_argument('--status-file', help='JSON file holding the download status records.')
    parser.add_argument('--api-base', help='Override the models API base URL.')
    parser.add_argument('--timeout', type=float, help='HTTP timeout in seconds.')
    parser.add_argument('--no-spinner', action='store_true', help='Disable tqdm progress display.')
    parser.add_argument('--show-status', action='store_true', help='Print the recorded download status and exit.')
    return parser


def _progress_reporter(bar: Optional[tqdm]) -> Callable[[float], None]:
    def report(fraction: float) -> None:
        if bar is None:
            return
        bar.n = round(fraction * 100, 1)
        bar.refresh()

    return report


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = MirrorConfig.from_env().with_overrides(
        download_root=args.dest,
        status_file=args.status_file,
        api_base=args.api_base,
        timeout=args.timeout,
    )

    if args.show_status:
        try:
            messages = download_controller.describe_status(config)
        except MirrorError as exc:
            print('Cannot read status file', config.status_file, ':', exc)
            return 1
        for message in messages:
            print(message)
        return 0

    if not args.repo or not args.model_id:
        parser.error('--repo and --model-id are required')

    logger = get_csv_logger('download_cli', log_dir=config.log_dir)
    logger.bound_context.update(repo=args.repo, model_id=args.model_id)
    logger.info('download_cli_invoked', argv=list(argv) if argv is not None else [])
    logger.info(
        'config_resolved',
        download_root=str(config.download_root),
        status_file=str(config.status_file),
        api_base=config.api_base,
        timeout=config.timeout,
    )

    request = DownloadRequest(
        model_id=args.model_id,
        destination=Path(args.dest).expanduser() if args.dest else None,
        revision=args.revision,
    )

    bar = None if args.no_spinner else tqdm(total=100, desc=f'Downloading {args.model_id}', unit='%')
    try:
        summary = download_controller.run_download(
            args.repo,
            request,
            config,
            on_progress=_progress_reporter(bar),
            logger=logger,
        )
    except MirrorError as exc:
        logger.exception('download_failed', error=str(exc), error_type=type(exc).__name__)
        print('FAILED', args.model_id, ':', exc)
        return 1
    finally:
        if bar is not None:
            bar.close()
        logger.close()

    print('SUCCESS:', args.model_id, '->', summary.destination)
    for message in download_controller.describe_summary(summary):
        print(message)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())

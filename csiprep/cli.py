"""
Command-line interface for csiprep
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click
import numpy as np

from csiprep.config.devices import available_devices
from csiprep.config.settings import get_settings, load_settings_from_file
from csiprep.config.suites import FILTER_TYPES, available_suites, default_config
from csiprep.core.phase_calibration import available_calibrators
from csiprep.core.pipeline import process as run_process
from csiprep.exceptions import PreprocessingError
from csiprep.logger import get_logger, setup_logging
from csiprep.testing import MockCSIGenerator

logger = get_logger(__name__)


def get_settings_with_config(config_file: Optional[str] = None):
    """Get settings with optional config file."""
    if config_file:
        return load_settings_from_file(config_file)
    else:
        return get_settings()


def _parse_numbers(value: Optional[str], name: str) -> Optional[Tuple[float, ...]]:
    """Parse a comma separated list such as ``2,200``."""
    if value is None:
        return None
    try:
        return tuple(float(item) for item in value.replace(" ", "").split(",") if item)
    except ValueError:
        raise click.BadParameter(f"expected comma separated numbers, got {value!r}", param_hint=name)


def load_csi_matrix(path: Path) -> np.ndarray:
    """Load a raw capture from ``.npy``, ``.npz`` (key ``csi``) or ``.csv``."""
    suffix = path.suffix.lower()
    if suffix == ".npy":
        return np.load(path)
    if suffix == ".npz":
        with np.load(path) as archive:
            if "csi" not in archive:
                raise click.ClickException(f"{path} has no 'csi' array (found: {', '.join(archive.files)})")
            return archive["csi"]
    if suffix == ".csv":
        try:
            return np.loadtxt(path, delimiter=",", dtype=np.complex128, ndmin=2)
        except ValueError as e:
            raise click.ClickException(f"Could not parse {path}: {e}")
    raise click.ClickException(f"Unsupported input format '{suffix}', expected .npy, .npz or .csv")


@click.group()
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration (.env) file'
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging'
)
@click.option(
    '--debug',
    is_flag=True,
    help='Enable debug logging'
)
@click.pass_context
def cli(ctx, config: Optional[str], verbose: bool, debug: bool):
    """CSI preprocessing command line interface."""
    ctx.ensure_object(dict)

    settings = get_settings_with_config(config)
    ctx.obj['settings'] = settings
    ctx.obj['verbose'] = verbose
    ctx.obj['debug'] = debug

    if debug or settings.debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = settings.log_level
    setup_logging(settings, level)
    logger.debug(f"Using settings for environment '{settings.environment}'")


@cli.command()
@click.argument('input_path', metavar='INPUT', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path),
              help='Output .npz file (default: <INPUT>.spectrogram.npz)')
@click.option('--suite', '-s', default=None, help='Preprocessing suite (default: from settings)')
@click.option('--fs', type=float, default=None, help='Sampling rate in Hz')
@click.option('--filter', 'filter_type', type=click.Choice(FILTER_TYPES), default=None,
              help='Band filter type')
@click.option('--passband', default=None, help='Cut-off frequencies in Hz, e.g. "2,200"')
@click.option('--dc-remove', nargs=2, type=int, default=None, help='DC removal window and stride')
@click.option('--pca', default=None, help='PCA window, stride and components, e.g. "1000,1000,1,2"')
@click.option('--stft', nargs=3, type=int, default=None, help='STFT window, stride and cleanup window')
@click.option('--phase-calibration', default=None, help='Phase calibration method')
@click.option('--antenna-selection/--no-antenna-selection', default=None,
              help='Select the reference link by signal strength')
@click.option('--reference-link', type=int, default=None, help='Fixed reference link index')
@click.option('--device', default=None, help='Device profile (default: from settings)')
@click.option('--workers', type=int, default=None, help='Threads for per-channel work (default: from settings)')
@click.pass_context
def process(
    ctx,
    input_path: Path,
    output: Optional[Path],
    suite: Optional[str],
    fs: Optional[float],
    filter_type: Optional[str],
    passband: Optional[str],
    dc_remove: Optional[Tuple[int, int]],
    pca: Optional[str],
    stft: Optional[Tuple[int, int, int]],
    phase_calibration: Optional[str],
    antenna_selection: Optional[bool],
    reference_link: Optional[int],
    device: Optional[str],
    workers: Optional[int],
):
    """Preprocess a raw CSI capture into a spectrogram."""
    settings = ctx.obj['settings']

    options: Dict[str, Any] = {
        "suite": suite or settings.default_suite,
        "device": device or settings.default_device,
    }
    if fs is not None:
        options["fs"] = fs
    if filter_type is not None:
        options["filter"] = filter_type
    if passband is not None:
        options["passband"] = _parse_numbers(passband, "--passband")
    if dc_remove:
        options["dcRemove"] = dc_remove
    if pca is not None:
        options["pca"] = _parse_numbers(pca, "--pca")
    if stft:
        options["stft"] = stft
    if phase_calibration is not None:
        options["phaseCalibration"] = phase_calibration
    if antenna_selection is not None:
        options["antennaSelection"] = antenna_selection
    if reference_link is not None:
        options["referenceLink"] = reference_link

    if workers is not None and workers < 1:
        raise click.BadParameter("must be at least 1", param_hint="--workers")
    max_workers = workers if workers is not None else settings.max_workers

    matrix = load_csi_matrix(input_path)
    logger.info(f"Loaded {input_path} with shape {matrix.shape}")

    try:
        result = run_process(matrix, options, max_workers=max_workers)
    except PreprocessingError as e:
        raise click.ClickException(str(e))

    if output is None:
        output = input_path.with_name(f"{input_path.stem}.spectrogram.npz")

    arrays = {
        "spectrogram": result.spectrogram,
        "frequencies": result.frequencies,
        "times": result.times,
        "suite": np.array(result.config.suite),
    }
    if result.rssi is not None:
        arrays["rssi"] = result.rssi
    np.savez(output, **arrays)

    click.echo(
        f"{result.config.suite}: wrote {result.spectrogram.shape[0]}x{result.spectrogram.shape[1]} "
        f"spectrogram to {output}"
    )


@cli.command()
@click.option(
    '--format',
    'output_format',
    type=click.Choice(['text', 'json']),
    default='text',
    help='Output format (default: text)'
)
def suites(output_format: str):
    """Show every suite and its default parameters."""
    configs = {name: default_config(name).to_dict() for name in available_suites()}

    if output_format == 'json':
        click.echo(json.dumps(configs, indent=2))
        return

    for name, values in configs.items():
        click.echo(name)
        for key, value in values.items():
            if key == "suite":
                continue
            if isinstance(value, tuple):
                value = ", ".join(f"{v:g}" if isinstance(v, float) else str(v) for v in value)
            click.echo(f"  {key:<18} {value}")
    click.echo(f"phase calibration methods: {', '.join(available_calibrators())}")
    click.echo(f"devices: {', '.join(available_devices())}")


@cli.command()
@click.argument('output', type=click.Path(dir_okay=False, path_type=Path))
@click.option('--packets', default=3000, type=int, help='Number of packets (default: 3000)')
@click.option('--links', default=3, type=int, help='Number of antenna links (default: 3)')
@click.option('--fs', default=1000.0, type=float, help='Packet rate in Hz (default: 1000)')
@click.option('--motion-freq', default=10.0, type=float, help='Motion frequency in Hz (default: 10)')
@click.option('--noise', default=0.01, type=float, help='Noise standard deviation (default: 0.01)')
@click.option('--rssi-columns', default=0, type=int, help='Trailing RSSI columns (default: 0)')
@click.option('--seed', default=0, type=int, help='Random seed (default: 0)')
def simulate(
    output: Path,
    packets: int,
    links: int,
    fs: float,
    motion_freq: float,
    noise: float,
    rssi_columns: int,
    seed: int,
):
    """Write a synthetic capture to OUTPUT (.npy)."""
    try:
        generator = MockCSIGenerator(
            num_packets=packets,
            num_links=links,
            fs=fs,
            motion_freq=motion_freq,
            noise_level=noise,
            rssi_columns=rssi_columns,
            seed=seed,
        )
    except ValueError as e:
        raise click.ClickException(str(e))

    matrix = generator.generate()
    if output.suffix.lower() != ".npy":
        output = output.with_suffix(".npy")
    np.save(output, matrix)
    click.echo(f"Wrote synthetic capture {matrix.shape[0]}x{matrix.shape[1]} to {output}")


def main():
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == '__main__':
    main()

#!/usr/bin/env python3
"""
Command-line entry point: extract one camera / LiDAR board correspondence
from an image and a point cloud file.
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from board_features.calib_io import load_params
from board_features.spatial_filter import Bounds
from board_features.viz_utils import show_markers

from .bounds import BoundsStore
from .extractor import FeatureExtractor
from .loader import load_image, load_scan
from .trigger import SampleOperation

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Board feature extraction for camera-LiDAR calibration',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  board-features --params params.json --image frame.png --cloud scan.npy
  board-features --params params.json --image frame.png --cloud scan.bin \\
      --bounds 1 5 -2 2 -1 1 --output sample.json --show
        """
    )
    parser.add_argument('--params', required=True, help='JSON file with board, camera and LiDAR parameters')
    parser.add_argument('--image', required=True, help='Camera frame (PNG/JPEG)')
    parser.add_argument('--cloud', required=True, help='Point cloud (.npy/.txt XYZIR, .bin, .pcd, .ply)')
    parser.add_argument(
        '--bounds',
        nargs=6,
        type=float,
        metavar=('X_MIN', 'X_MAX', 'Y_MIN', 'Y_MAX', 'Z_MIN', 'Z_MAX'),
        help='Override the experimental region from the params file'
    )
    parser.add_argument('--output', help='Write the correspondence to this JSON file')
    parser.add_argument('--show', action='store_true', help='Show the board cloud and markers in Open3D')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        params = load_params(args.params)
        bounds = BoundsStore(params.bounds)
        if args.bounds is not None:
            bounds.set(Bounds(*args.bounds))
        image = load_image(args.image)
        scan = load_scan(args.cloud, params.lidar)
    except (OSError, ValueError, KeyError) as e:
        logger.error(f"Initialization failed: {e}")
        return 2

    markers = []
    board_clouds = []
    extractor = FeatureExtractor(
        params,
        bounds=bounds,
        on_board_cloud=board_clouds.append,
        on_markers=markers.extend,
    )
    extractor.request_sample(SampleOperation.CAPTURE)
    result = extractor.process(image, scan)

    if not result.ok:
        logger.error(f"No correspondence extracted: {result.failure.value}: {result.message}")
        return 1

    payload = json.dumps(result.sample.to_dict(), indent=2)
    print(payload)
    if args.output:
        Path(args.output).write_text(payload + "\n")
        logger.info(f"Correspondence written to {args.output}")

    if args.show and board_clouds:
        show_markers(board_clouds[0], markers)
    return 0


if __name__ == "__main__":
    sys.exit(main())

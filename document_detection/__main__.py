#!/usr/bin/env python3
"""
CLI interface for the document detection module.

Usage:
    python -m document_detection detect card.jpg
    python -m document_detection detect card.jpg -o result.png --preset generic
    python -m document_detection generate test_images
    python -m document_detection benchmark test_images -o test_results
"""

import argparse
import logging
import sys
from pathlib import Path

import cv2

from .benchmark import DetectionBenchmark, BenchmarkStatistics
from .config import DetectorConfig, PRESETS
from .detector import DocumentDetector
from .errors import DetectionError, InvalidInput, NoDocumentFound
from .image import load_image
from .synthetic import SyntheticDocumentGenerator
from .visualizer import BoundsVisualizer


def parse_config_pairs(pairs):
    """Split ``key=value`` strings into a dict."""
    values = {}
    for pair in pairs or []:
        key, sep, value = pair.partition('=')
        if not sep or not key:
            raise InvalidInput(f"Expected key=value, got {pair!r}")
        values[key.strip()] = value.strip()
    return values


def build_detector(args) -> DocumentDetector:
    """Detector configured from the environment, then the command line."""
    config = DetectorConfig.from_env(preset=args.preset)
    config.update(parse_config_pairs(args.config))
    return DocumentDetector(config)


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description='ID document boundary detection',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:

  # Detect a document and print its normalized corners
  python -m document_detection detect card.jpg

  # Save a visualization, use fixed thresholds
  python -m document_detection detect card.jpg -o result.png --preset generic

  # Override single settings
  python -m document_detection detect card.jpg --config canny_threshold1=40 --config min_score=0.3

  # Generate synthetic test images and benchmark on them
  python -m document_detection generate test_images
  python -m document_detection benchmark test_images -o test_results

Settings are also read from IDDETECT_<KEY> environment variables (and .env).
        """
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', required=True)

    detector_options = argparse.ArgumentParser(add_help=False)
    detector_options.add_argument(
        '--preset',
        choices=sorted(PRESETS),
        help='Configuration preset (default: id1, or IDDETECT_PRESET)'
    )
    detector_options.add_argument(
        '-c', '--config',
        action='append',
        metavar='KEY=VALUE',
        help='Configuration override, may be repeated'
    )

    detect = subparsers.add_parser('detect', parents=[detector_options], help='Detect a document in one image')
    detect.add_argument('input', help='Input image')
    detect.add_argument('-o', '--output', help='Save visualization to this file')
    detect.add_argument('--side-by-side', action='store_true', help='Put the original next to the visualization')

    generate = subparsers.add_parser('generate', help='Generate synthetic test images')
    generate.add_argument('output_dir', nargs='?', default='test_images', help='Output directory (default: test_images)')
    generate.add_argument('--seed', type=int, help='Random seed for reproducible images')

    benchmark = subparsers.add_parser('benchmark', parents=[detector_options], help='Benchmark on a directory of images')
    benchmark.add_argument('test_dir', nargs='?', default='test_images', help='Image directory (default: test_images)')
    benchmark.add_argument('-o', '--output-dir', default='test_results', help='Results directory (default: test_results)')
    benchmark.add_argument('--no-visual', action='store_true', help='Do not write annotated images')

    return parser.parse_args(argv)


def run_detect(args) -> int:
    if not Path(args.input).exists():
        print(f"❌ Error: Input file not found: {args.input}")
        return 1

    image = load_image(args.input)
    print(f"📄 Processing: {Path(args.input).name} ({image.shape[1]}x{image.shape[0]} px)")

    try:
        bounds = build_detector(args).detect(image)
    except NoDocumentFound as e:
        print(f"❌ No document found: {e}")
        return 1

    print(f"✓ Document found, confidence {bounds.confidence:.3f}")
    labels = ('top-left', 'top-right', 'bottom-right', 'bottom-left')
    for label, (x, y) in zip(labels, bounds.corners):
        print(f"  {label:<13} ({x:.4f}, {y:.4f})")

    if args.output:
        visualizer = BoundsVisualizer()
        result = visualizer.visualize(image, bounds)
        if args.side_by_side:
            result = visualizer.create_side_by_side(image, result)
        cv2.imwrite(args.output, result)
        print(f"✅ Saved: {args.output}")

    return 0


def run_generate(args) -> int:
    generator = SyntheticDocumentGenerator(seed=args.seed)
    print(f"Generating synthetic test suite in: {args.output_dir}")
    paths = generator.generate_suite(args.output_dir)
    print(f"✅ Generated {len(paths)} test images")
    return 0


def run_benchmark(args) -> int:
    bench = DetectionBenchmark(build_detector(args))
    results = bench.run(args.test_dir)
    if not results:
        print(f"❌ No test images found in directory: {args.test_dir}")
        return 1

    for result in results:
        status = "✓" if result.success else "✗"
        print(f"  {status} {result.image_name} (confidence: {result.confidence:.3f})")

    print()
    print(BenchmarkStatistics.from_results(results).format())

    output_dir = Path(args.output_dir)
    bench.save_results(results, output_dir / 'detailed_results.csv')
    print(f"Detailed results saved to: {output_dir / 'detailed_results.csv'}")

    if not args.no_visual:
        bench.save_visual_results(results, args.test_dir, output_dir / 'visual')
        print(f"Visual results saved to: {output_dir / 'visual'}")

    return 0


COMMANDS = {
    'detect': run_detect,
    'generate': run_generate,
    'benchmark': run_benchmark,
}


def main(argv=None):
    """Main CLI function"""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s'
    )

    try:
        code = COMMANDS[args.command](args)
    except (DetectionError, FileNotFoundError) as e:
        print(f"❌ Error: {e}")
        code = 1

    sys.exit(code)


if __name__ == '__main__':
    main()

import argparse
import logging

from model import SuperResolutionModel
import config


def parse_args():
    parser = argparse.ArgumentParser(
        description="Multi-frame super-resolution with an IRLS MAP solver")
    parser.add_argument("images", nargs="+",
                        help="LR frames, or a single HR image with --synthesize")
    parser.add_argument("--synthesize", action="store_true",
                        help="degrade the given HR image into LR frames first")
    parser.add_argument("--output", default=config.RESULT_PATH)
    parser.add_argument("--show", action="store_true", help="plot the result")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    print("starting super-resolution")
    model = SuperResolutionModel(config)
    if args.synthesize:
        if len(args.images) != 1:
            raise SystemExit("--synthesize takes exactly one HR image")
        result = model.run_synthetic(args.images[0], save_path=args.output, show=args.show)
    else:
        result = model.run(args.images, save_path=args.output, show=args.show)

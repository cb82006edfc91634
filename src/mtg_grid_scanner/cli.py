import argparse, json, sys

from .config import HOST, PORT, DEFAULT_GRID
from .version import get_current_version


def _cmd_serve(args):
    from .server import run_server
    run_server(args.host, args.port)
    return 0


def _cmd_scan(args):
    import cv2
    from .events import Completed, Failed, event_to_dict
    from .server import build_default_pipeline

    img = cv2.imread(args.image, cv2.IMREAD_COLOR)
    if img is None:
        print(f"cannot read image: {args.image}", file=sys.stderr)
        return 2
    pipeline = build_default_pipeline()
    status = 1
    for ev in pipeline.process_grid_image(img, args.grid):
        print(json.dumps(event_to_dict(ev)))
        if isinstance(ev, Completed):
            status = 0
            if args.save:
                from .store import CardStore
                CardStore().save_many(ev.cards)
        elif isinstance(ev, Failed):
            status = 1
    return status


def main(argv=None):
    p = argparse.ArgumentParser(prog="mtg-grid-scanner", description="Identify MTG cards photographed in a grid.")
    p.add_argument("--version", action="version", version=get_current_version())
    sub = p.add_subparsers(dest="cmd")

    sp = sub.add_parser("serve", help="run the HTTP API")
    sp.add_argument("--host", default=HOST)
    sp.add_argument("--port", type=int, default=PORT)
    sp.set_defaults(func=_cmd_serve)

    sc = sub.add_parser("scan", help="identify the cards in one image and print events as JSON lines")
    sc.add_argument("image")
    sc.add_argument("--grid", default=DEFAULT_GRID, help="rows x cols, e.g. 3x3 or 4x3")
    sc.add_argument("--save", action="store_true", help="store the identified cards")
    sc.set_defaults(func=_cmd_scan)

    argv = list(sys.argv[1:] if argv is None else argv)
    # bare invocation (or only serve options) runs the server
    if not argv or (argv[0].startswith("-") and argv[0] not in ("-h", "--help", "--version")):
        argv = ["serve"] + argv
    args = p.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

from importlib.metadata import version as _pkg_version, PackageNotFoundError

def get_current_version() -> str:
    try:
        return _pkg_version("mtg-grid-scanner")
    except PackageNotFoundError:
        # editable / source checkouts
        from . import __version__
        return __version__

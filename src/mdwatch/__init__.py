"""mdwatch — live markdown preview on the Bengal stack.

Watches one markdown document, re-renders it when it changes, and tells every
open browser tab to refresh over Server-Sent Events.

Quick start::

    $ mdwatch README.md > README.html     # render to stdout
    $ mdwatch -s README.md                # open a rendered copy in a browser
    $ mdwatch -w README.md                # live preview until the tab closes

From Python::

    import mdwatch

    html = mdwatch.render(b"# Hi")

Built from:

    chirp       Web framework     (GET / and the /updates stream)
    pounce      ASGI server       (loopback listener)
    patitas     Markdown parser   (renders the document)
    rosettes    Syntax highlighter (highlights code blocks)
    watchfiles  File watcher      (change notifications)

"""

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0-dev"
__all__ = [
    "PreviewConfig",
    "__version__",
    "preview",
    "render",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import mdwatch`` fast; chirp, pounce and patitas load on first use.
    """
    if name == "PreviewConfig":
        from mdwatch.config import PreviewConfig

        return PreviewConfig

    if name == "render":
        from mdwatch.content.renderer import render

        return render

    if name == "preview":
        from mdwatch.app import preview

        return preview

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)

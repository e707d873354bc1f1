from nuoutdated.__version__ import __version__

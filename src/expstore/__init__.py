"""
expstore - Local, file-backed persistence for an experiment-tracking manager.

It durably records:
- Experiment configuration revisions
- Trial job lifecycle events
- Reported metric data points

and answers filtered queries over them from a single SQLite file.

Example usage:
    $ expstore init --dir ./experiment
    $ expstore events --dir ./experiment --trial t1
    $ expstore profiles exp1 --dir ./experiment --latest
"""

__version__ = "0.1.0"
__author__ = "expstore Contributors"

__all__ = [
    "__version__",
    "__author__",
]

"""
Weave - diagnostics CLI for manifest merging, resolution and assembly.

Usage:
    weave merge <entry>... --manifests DIR
    weave resolve <entry>... --manifests DIR
    weave validate <entry>... --manifests DIR
    weave order <entry>... --manifests DIR
    weave assemble <entry>... --manifests DIR --assets DIR
"""

from .. import __version__

__cli_name__ = "weave"

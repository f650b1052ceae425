"""Face age gate: capture -> face region -> multi-pass inference -> verdict -> protective policy.

Entry points:
- ``gate.AgeGate`` runs one analysis cycle against an injected ``PipelineContext``
- ``cli.main`` exposes the cycle on still images (``agegate analyze``)
"""

__version__ = "0.1.0"

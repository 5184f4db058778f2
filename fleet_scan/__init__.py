"""fleet_scan

Core package namespace for the fleet compliance-scan orchestrator.

Why this exists
---------------
The orchestration code lives in the top-level ``pipeline`` package and the
adapters for external collaborators (config fetcher, scanning engine, reporting
sink) live in ``tools``. Both need to agree on the same vocabulary:

* domain types (scan config, targets, results, verdicts)
* the error taxonomy
* IO/layout rules for the run-scoped working area

That shared contract lives here so neither side has to import the other.
"""

from __future__ import annotations

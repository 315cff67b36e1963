"""Shared test fixtures for the igmon test suite.

Configuration (tests/fixtures/config.py)
    sample_config: IgmonConfig loaded from an igmon.yaml in a temp project.
    fast_config: IgmonConfig with no probe and short timings.

Runners (tests/fixtures/runners.py)
    ScriptedAdapter: in-memory adapter replaying Write/Pause/Done/Fail steps.
    make_payload, results_line: results helpers.
    ready_gate, pending_gate: settled and never-settled readiness gates.
"""

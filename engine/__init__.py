"""
Engine adapter package: drives a locally installed UCI engine (Stockfish).

The engine itself is an external binary; this package only finds it, talks
to it over stdin/stdout, and shapes what it says into an AnalysisResult.

Modules:
    constants — Defaults, time budgets, environment variable names
    errors    — EngineError and its subclasses
    locator   — Engine binary path resolution and availability
    protocol  — UCI line framing, info/bestmove parsing, command composition
    session   — UciSession state machine and analyze_position() entry point
"""

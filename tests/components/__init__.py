"""Component tests for sgfreplay.

This package contains detailed tests for each of the core components:
1. Liberty - Chain table and liberty counting (core/liberty.py)
2. SGF Parser - Tree parser and its dialect tolerances (input/sgf_parser.py)
3. Move extraction - Setup stones and played moves (input/sgf_moves.py)
4. Replay - Captures, legality checks and repetition (core/playgame.py)
"""

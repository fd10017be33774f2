"""Workflow transition engine.

This package turns editor change notifications into compensating edits:
- the registry resolves configured stage graphs
- the extractor reads workflow identity out of a single line
- the classifier decides which edited ranges matter
- the planner computes the next stage and the text edits expressing it
- the emitter coalesces those edits and tags them so they are never reprocessed

The engine is a pure function of the incoming change; the host editor owns
subscription to the live edit stream.
"""

__all__: list[str] = []

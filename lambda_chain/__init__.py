"""
Lambda Chain - Package Initializer
==================================

What: Middleware chaining for AWS Lambda handlers, plus API Gateway response
      helpers.

Architecture Note:

    ┌─────────────────────────────────────┐
    │  main         start / bootstrap     │  ← composes, then serves
    ├─────────────────────────────────────┤
    │  runtime      Runtime API loop      │  ← decode, invoke, post result
    ├─────────────────────────────────────┤
    │  chain        middleware nesting    │  ← first listed = outermost
    ├─────────────────────────────────────┤
    │  middleware   context, metrics      │  ← cross-cutting concerns
    ├─────────────────────────────────────┤
    │  context / logctx / events / clock  │  ← data carried through the chain
    └─────────────────────────────────────┘

    `response` is independent: handlers use it to build API Gateway replies.
"""

__version__ = "1.0.0"

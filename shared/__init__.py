"""
Shared Kernel

Building blocks reused by every bounded context of the marketplace:
domain events, value objects, the unit of work, the message bus and the
API error translation.
"""

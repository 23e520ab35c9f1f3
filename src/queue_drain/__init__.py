"""
Queue Drain

Moves records from a leased durable queue into database tables, deleting each
queue item only after its insert succeeds.

Usage:
    from queue_drain.coordinator import DrainCycle, DrainCoordinator, DrainTarget

    cycle = DrainCycle(queue_client, storage_client)
    outcome = await cycle.run(DrainTarget("donations", "contributions"), max_batch=100)
"""

__version__ = "0.1.0"

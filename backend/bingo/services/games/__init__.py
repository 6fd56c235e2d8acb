"""Game core services: lease, calls, claims, stages and snowball pots.

Every public operation takes ``(game_id, caller, ...)`` and returns an
``ActionResult``; HTTP routes and socket handlers only translate requests
into these calls and results into responses.
"""

"""Built-in CLI sub-commands for vidcache.

All commands live in :mod:`~vidcache.commands.cache` and are plain
callback functions registered directly on the root app:

* ``status`` / ``validate`` -- inspect the cache without touching the network.
* ``warmup`` / ``refresh`` -- populate the cache from the YouTube Data API.
* ``complete`` / ``clear`` -- maintain the ledger and the cache directory.
"""

"""
    ____       __             ________          __
   / __ \___  / /___ ___  __/ ____/ /_  ____ _/ /_
  / /_/ / _ \/ / __ `/ / / / /   / __ \/ __ `/ __/
 / _, _/  __/ / /_/ / /_/ / /___/ / / / /_/ / /_
/_/ |_|\___/_/\__,_/\__, /\____/_/ /_/\__,_/\__/
                   /____/

RelayChat Project - A single-room authenticated chat relay.

Users register and log in over HTTP, then share one real-time room in which
every message is relayed to everyone connected.

License: Apache-2.0 License
"""

__version__ = "1.0.0"

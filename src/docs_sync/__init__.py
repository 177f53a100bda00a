"""Release documentation sync agent.

Listens for published GitHub releases, works out what changed since the
previous release, drafts documentation updates, and delivers them as a
single commit on a docs branch with a pull request.
"""

__version__ = "0.1.0"

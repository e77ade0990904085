"""depbot: hosting platform abstraction for automated dependency updates.

The ``platform`` package gives the update tool one contract for pull
requests, issues, branch statuses and comments. The ``presets`` package
resolves shared configuration presets from the same endpoints.
"""

__version__ = "0.3.0"

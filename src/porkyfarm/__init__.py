"""PorkyFarm farm records.

Client-local record keeping for pig farms: the herd registry, health cases,
gestations, vaccinations, feed ledgers, a recent-activity feed, and the
dashboard stats and alerts derived from them.

Subpackages:
- porkyfarm.core: Configuration, units, email client, rate limiting
- porkyfarm.data: Store, status rules, derived fields, dashboard
- porkyfarm.notify: Templated transactional email
- porkyfarm.oauth: Authorization consent requests
- porkyfarm.cli: Command-line tools
"""

__version__ = "0.1.0"

"""
floodguard - HTTP flood detector and blocker for access logs

This package provides:
- line_filter: Include/exclude rules applied to raw log lines
- log_parser: Extract the source address from a log line
- expiring: Time-windowed FIFO with lazy eviction
- window: Per-address sliding window counter
- detector: Flood detection state machine (emits block events)
- recent: Recent status messages for the operator
- stats: Status snapshot and rendering
- tailer: Line sources (stdin, rotating log files)
- firewall: Block addresses (iptables/ufw)
- whitelist: Trusted addresses (never block)
- logger: JSON logging
- config: Central configuration
- runner: Driver loop tying it all together
"""

__version__ = "1.0.0"

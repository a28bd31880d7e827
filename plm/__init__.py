"""PLM task workflow and scheduling engine."""

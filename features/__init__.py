"""Feature packages (``features.<name>.{domain,application,infrastructure,presentation}``)."""

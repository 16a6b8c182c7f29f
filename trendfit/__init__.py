"""trendfit: polynomial trend fitting for exploratory reports."""

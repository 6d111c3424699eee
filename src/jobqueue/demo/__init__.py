"""jobqueue demo -- ``python -m jobqueue.demo`` runs a throttled burst of jobs."""

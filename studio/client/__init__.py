# Client package - job polling for UI consumers
from studio.client.jobs_client import JobsClient, has_product_shot
from studio.client.poller import JobPoller, PollState

__all__ = [
    "JobsClient",
    "has_product_shot",
    "JobPoller",
    "PollState",
]

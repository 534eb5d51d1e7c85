from .base import (
    CodePublisher,
    ContractSubmitter,
    Deployer,
    Deployment,
    IntegrationNotConfigured,
    SocialPoster,
    StepRunner,
)
from .bridge import IntegrationBridge

__all__ = [
    "CodePublisher",
    "ContractSubmitter",
    "Deployer",
    "Deployment",
    "IntegrationBridge",
    "IntegrationNotConfigured",
    "SocialPoster",
    "StepRunner",
]

"""Provision and manage an IB Gateway container on AWS Fargate."""

__version__ = "0.1.0"

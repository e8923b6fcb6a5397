"""Shared boto3 session construction."""

from __future__ import annotations

import boto3

from bluegreen.config import AwsSettings


def make_session(settings: AwsSettings) -> boto3.Session:
    if settings.profile:
        return boto3.Session(profile_name=settings.profile, region_name=settings.region)
    return boto3.Session(region_name=settings.region)

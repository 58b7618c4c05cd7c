"""Shared fixtures: metric builders and fake Search Console clients."""

import sys
from pathlib import Path

import pandas as pd
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from analysis.models import MetricsSnapshot, PageComparison


def snapshot(clicks=0, impressions=0, ctr=None, position=5.0):
    if ctr is None:
        ctr = clicks / impressions if impressions else 0.0
    return MetricsSnapshot(clicks=clicks, impressions=impressions, ctr=ctr, position=position)


def comparison(url="https://example.com/page", current=None, previous=None, recent=None):
    return PageComparison(page_url=url, current=current, previous=previous, recent=recent)


def page_frame(rows):
    """rows: list of (page, clicks, impressions, ctr, position)"""
    return pd.DataFrame(rows, columns=["page", "clicks", "impressions", "ctr", "position"])


# ── Fake googleapiclient service ─────────────────────────────────────


class FakeRequest:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error

    def execute(self):
        if self.error is not None:
            raise self.error
        return self.response


class FakeSearchAnalytics:
    def __init__(self, service):
        self.service = service

    def query(self, siteUrl, body):
        self.service.calls.append((siteUrl, body))
        if self.service.error is not None:
            return FakeRequest(error=self.service.error)
        return FakeRequest(self.service.responder(siteUrl, body))


class FakeSites:
    def __init__(self, service):
        self.service = service

    def list(self):
        if self.service.error is not None:
            return FakeRequest(error=self.service.error)
        return FakeRequest({"siteEntry": self.service.site_entries})


class FakeService:
    def __init__(self, responder=None, sites=None, error=None):
        self.responder = responder or (lambda site_url, body: {"rows": []})
        self.site_entries = sites or []
        self.error = error
        self.calls = []

    def searchanalytics(self):
        return FakeSearchAnalytics(self)

    def sites(self):
        return FakeSites(self)


@pytest.fixture
def no_sleep():
    delays = []
    return delays, delays.append

"""Shared test fixtures for gherkin-core."""

import json
from pathlib import Path

import pytest


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a temporary empty project directory."""
    return tmp_path


@pytest.fixture
def initialized_project(tmp_path: Path) -> Path:
    """Create a temporary project with gherkin-core initialized."""
    config_dir = tmp_path / ".gherkin"
    config_dir.mkdir()
    config = {
        "language": "en",
        "tag_filter": "not @wip",
        "dry_run": False,
        "parameter_types": [
            {"name": "color", "patterns": ["red", "green", "blue"]},
        ],
    }
    (config_dir / "config.json").write_text(json.dumps(config, indent=2))
    return tmp_path


@pytest.fixture
def simple_feature() -> str:
    """Return a feature with a single plain scenario."""
    return """\
Feature: Cucumber basket
  Scenario: Eating cukes
    Given I have 3 cukes
    When I eat 1 cuke
    Then I have 2 cukes
"""


@pytest.fixture
def outline_feature() -> str:
    """Return a feature with a tagged outline and two Examples blocks."""
    return """\
@billing
Feature: Refunds

  @outline
  Scenario Outline: Refund <amount> to <who>
    Given a purchase of <amount>
    When <who> asks for a refund
    Then the refund is <amount>

    @small
    Examples: Small
      | amount | who   |
      | 5      | alice |
      | 10     | bob   |

    @large
    Examples: Large
      | amount | who   |
      | 500    | carol |
"""


@pytest.fixture
def full_feature() -> str:
    """Return a feature that uses backgrounds, rules, tables and doc strings."""
    return '''\
# language: en
@shop
Feature: Checkout
  Customers pay for their baskets.

  Background:
    Given the shop is open

  Scenario: Empty basket
    When I check out
    Then I see "nothing to pay"

  @vip
  Rule: Discounts
    Background:
      Given a discount of 10 percent

    @fast
    Scenario: Discounted basket
      Given a basket with:
        | item  | price |
        | apple | 1     |
      And a note
        """text/plain
        Leave at door
        """
      When I check out
      But I cancel
      Then I pay 0.9
'''


@pytest.fixture
def step_definitions_yaml() -> str:
    """Return a step definition file covering the three pattern kinds."""
    return """\
exact:
  - the shop is open
expression:
  - I check out
  - I see {string}
  - a basket in {color}
regex:
  - ^a discount of (\\d+) percent$
parameter_types:
  - name: color
    patterns: [red, green, blue]
"""

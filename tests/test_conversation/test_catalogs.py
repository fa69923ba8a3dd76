"""Tests for step catalogs.

Covers: StepCatalog.build validation, longest_path, resolve fallback for
unknown step ids, settle skip-forward, step_for_field, prompt rendering.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from paintquote.conversation.catalogs import CATALOGS, QUOTE_CHAT_CATALOG, SETUP_CATALOG, get_catalog
from paintquote.conversation.steps import COMPLETE, Branch, Step, StepCatalog, flatten, get_path, render_template
from paintquote.schemas.enums import IntakeFlow


class TestCatalogValidation:
    def test_unknown_target_rejected(self) -> None:
        with pytest.raises(ValueError, match="unknown steps"):
            StepCatalog.build("broken", [Step(id="a", prompt="A?", default_next="nowhere")], completion_prompt="")

    def test_cycle_rejected(self) -> None:
        steps = [
            Step(id="a", prompt="A?", default_next="b"),
            Step(id="b", prompt="B?", default_next=COMPLETE, branches=(Branch("a", lambda v, s: True),)),
        ]
        with pytest.raises(ValueError, match="cycle"):
            StepCatalog.build("loop", steps, completion_prompt="")

    @pytest.mark.parametrize("flow", list(IntakeFlow))
    def test_shipped_catalogs_are_valid(self, flow: IntakeFlow) -> None:
        catalog = get_catalog(flow)
        catalog.validate()
        assert catalog is CATALOGS[flow]

    def test_longest_path(self) -> None:
        assert SETUP_CATALOG.longest_path() == 26
        assert QUOTE_CHAT_CATALOG.longest_path() == 9


class TestResolve:
    def test_none_is_entry(self) -> None:
        assert SETUP_CATALOG.resolve(None).id == "owner_name"

    def test_known_step(self) -> None:
        assert SETUP_CATALOG.resolve("tax_rate").id == "tax_rate"

    def test_unknown_step_resumes_at_section_start(self) -> None:
        """A pointer from an older catalog version lands on its section's first step."""
        assert SETUP_CATALOG.resolve("labor_primer_rate").id == "labor_wall_rate"
        assert SETUP_CATALOG.resolve("interior_primer_color").id == "interior_primer_brand"

    def test_unrelated_step_resumes_at_entry(self) -> None:
        assert QUOTE_CHAT_CATALOG.resolve("bogus").id == "customer_info"


class TestSettle:
    def test_exterior_only_skips_interior_products(self) -> None:
        state = {"setup": {"service_types": "exterior"}}
        assert SETUP_CATALOG.settle("interior_primer_brand", state) == "exterior_primer_brand"

    def test_ceiling_rate_skipped_for_exterior(self) -> None:
        state = {"setup": {"service_types": "exterior"}}
        assert SETUP_CATALOG.settle("labor_ceiling_rate", state) == "labor_trim_rate"

    def test_no_tax_completes(self) -> None:
        assert SETUP_CATALOG.settle("tax_scope", {"setup": {"tax_rate": "0"}}) == COMPLETE

    def test_filled_slots_are_skipped(self) -> None:
        state = {
            "customer": {"name": "John Smith"},
            "project": {"surfaces": ["walls"]},
            "measurements": {"walls_sqft": Decimal("800")},
            "products": {"paint_quality": "best"},
        }
        assert QUOTE_CHAT_CATALOG.settle("customer_name", state) == "markup"

    def test_exterior_skips_ceilings(self) -> None:
        state = {"customer": {"name": "A B"}, "project": {"type": "exterior"}, "measurements": {"walls_sqft": 900}}
        assert QUOTE_CHAT_CATALOG.settle("ceilings_sqft", state) == "trim_sqft"


class TestStepForField:
    def test_exact_field(self) -> None:
        assert QUOTE_CHAT_CATALOG.step_for_field("measurements.walls_sqft").id == "walls_sqft"

    def test_parent_field(self) -> None:
        step = SETUP_CATALOG.step_for_field("setup.products.interior.wall_paint.product_name")
        assert step.id == "interior_wall_details"

    def test_unknown_field(self) -> None:
        assert QUOTE_CHAT_CATALOG.step_for_field("customer.notes") is None


class TestTemplates:
    def test_get_path(self) -> None:
        state = {"setup": {"labor": {"walls": "2.5"}}}
        assert get_path(state, "setup.labor.walls") == "2.5"
        assert get_path(state, "setup.labor.trim") is None
        assert get_path(state, "setup.labor.walls.deeper") is None

    def test_flatten(self) -> None:
        flat = flatten({"a": {"b": Decimal("45.00"), "c": ["walls", "trim"], "d": None}})
        assert flat == {"a_b": "45", "a_c": "walls, trim"}

    def test_missing_placeholder_renders_empty(self) -> None:
        assert render_template("Hi {setup_owner_name}!", {}) == "Hi !"

    def test_setup_prompt_uses_earlier_answers(self) -> None:
        step = SETUP_CATALOG.get("business_name")
        assert step.render({"setup": {"owner_name": "Sam"}}) == (
            "Nice to meet you, Sam! What's the name of your painting business?"
        )

"""Tests for compiling declarations into a Specification."""
import pytest

from statewright import BuildError, SpecificationBuilder, build_specification


class TestFluentBuilder:
    def test_first_declared_state_is_initial(self, review_spec):
        assert review_spec.initial_state.name == "new"
        assert review_spec.state_names() == [
            "new",
            "awaiting_review",
            "being_reviewed",
            "accepted",
            "rejected",
        ]

    def test_events_are_scoped_to_their_state(self, review_spec):
        assert list(review_spec.events_of("being_reviewed")) == ["accept", "reject"]
        assert dict(review_spec.events_of("accepted")) == {}
        assert review_spec.event_names() == {"submit", "review", "accept", "reject"}

    def test_same_named_events_keep_declaration_order(self):
        spec = (
            SpecificationBuilder("device")
            .state("off")
            .event("turn_on", to="on", guard=lambda host: host.battery > 10)
            .event("turn_on", to="low_battery", guard=lambda host: host.battery > 0)
            .state("on")
            .state("low_battery")
            .build()
        )

        candidates = spec.events_of("off")["turn_on"]
        assert [e.transitions_to for e in candidates] == ["on", "low_battery"]
        assert spec.state("off").event("turn_on") is candidates[0]

    def test_metadata_is_read_only(self):
        spec = (
            SpecificationBuilder("doc")
            .meta(owner="docs")
            .state("draft", meta={"color": "grey"})
            .event("publish", to="live", meta={"audit": True})
            .state("live")
            .build()
        )

        assert spec.meta["owner"] == "docs"
        assert spec.state("draft").meta == {"color": "grey"}
        assert spec.state("draft").event("publish").meta["audit"] is True
        with pytest.raises(TypeError):
            spec.state("draft").meta["color"] = "red"  # type: ignore[index]

    def test_build_twice_yields_independent_specs(self):
        builder = SpecificationBuilder("twice")
        builder.state("a").event("go", to="b")
        builder.state("b")

        first = builder.build()
        builder.state("c")
        second = builder.build()

        assert first.state_names() == ["a", "b"]
        assert second.state_names() == ["a", "b", "c"]

    def test_guard_names_resolve_through_registry(self, guards):
        guards.register("paid", lambda host: host.paid)
        spec = (
            SpecificationBuilder("invoice", guards=guards)
            .state("open").event("close", to="closed", guard="paid")
            .state("closed")
            .build()
        )

        event = spec.state("open").event("close")
        assert len(event.guards) == 1
        assert event.guards[0] is guards.get("paid")

    def test_domain_specific_guard_preferred(self, guards):
        shared = lambda host: True  # noqa: E731
        scoped = lambda host: False  # noqa: E731
        guards.register("ready", shared)
        guards.register("ready", scoped, domain="invoice")

        spec = (
            SpecificationBuilder("invoice", guards=guards)
            .state("open").event("close", to="closed", guards=["ready"])
            .state("closed")
            .build()
        )

        assert spec.state("open").event("close").guards == (scoped,)

    def test_action_names_resolve_through_registry(self, actions):
        def archive(host):
            return "archived"

        actions.register("archive", archive)
        builder = SpecificationBuilder("doc", actions=actions).on_transition("archive")
        builder.state("live").event("retire", to="gone", action="archive")
        builder.state("gone")
        spec = builder.build()

        assert spec.state("live").event("retire").action is archive
        assert spec.on_transition == (archive,)


class TestBuildErrors:
    def test_no_states(self):
        with pytest.raises(BuildError, match="declares no states"):
            SpecificationBuilder("empty").build()

    def test_duplicate_state(self):
        builder = SpecificationBuilder("dup")
        builder.state("a")
        builder.state("a")

        with pytest.raises(BuildError, match="Duplicate state 'a'") as exc_info:
            builder.build()
        assert exc_info.value.context["state"] == "a"

    def test_unknown_target(self):
        builder = SpecificationBuilder("broken")
        builder.state("a").event("go", to="nowhere")

        with pytest.raises(BuildError, match="undeclared state 'nowhere'"):
            builder.build()

    def test_missing_target(self):
        builder = SpecificationBuilder("broken")
        builder.state("a").event("go", to=None)  # type: ignore[arg-type]

        with pytest.raises(BuildError, match="has no target"):
            builder.build()

    @pytest.mark.parametrize("bad_name", ["", "   ", 3, None])
    def test_invalid_state_name(self, bad_name):
        builder = SpecificationBuilder("broken")
        builder.state(bad_name)  # type: ignore[arg-type]

        with pytest.raises(BuildError, match="State name must be a non-empty string"):
            builder.build()

    def test_unknown_guard_name(self, guards):
        builder = SpecificationBuilder("broken", guards=guards)
        builder.state("a").event("go", to="a", guard="missing")

        with pytest.raises(BuildError, match="Unknown guard 'missing'"):
            builder.build()

    def test_guard_of_wrong_type(self):
        builder = SpecificationBuilder("broken")
        builder.state("a").event("go", to="a", guards=[42])

        with pytest.raises(BuildError, match="Guard must be a callable"):
            builder.build()

    def test_non_callable_hook(self):
        builder = SpecificationBuilder("broken")
        builder.state("a")
        builder.on_error(123)  # type: ignore[arg-type]

        with pytest.raises(BuildError, match="on_error must be a callable"):
            builder.build()

    def test_meta_must_be_mapping(self):
        builder = SpecificationBuilder("broken")
        builder.state("a", meta=["not", "a", "mapping"])  # type: ignore[arg-type]

        with pytest.raises(BuildError, match="meta must be a mapping"):
            builder.build()

    def test_build_error_is_value_error(self):
        with pytest.raises(ValueError):
            SpecificationBuilder("empty").build()


class TestBuildSpecification:
    def test_mapping_form(self, guards):
        guards.register("approved", lambda host: host.approved)
        spec = build_specification(
            {
                "name": "article",
                "meta": {"version": 2},
                "states": {
                    "new": {"events": {"submit": "awaiting_review"}},
                    "awaiting_review": {
                        "meta": {"queue": "editors"},
                        "events": [
                            {"name": "review", "to": "accepted", "guard": "approved"},
                            {"name": "review", "to": "rejected"},
                        ],
                    },
                    "accepted": None,
                    "rejected": {},
                },
            },
            guards=guards,
        )

        assert spec.name == "article"
        assert spec.meta == {"version": 2}
        assert spec.state_names() == ["new", "awaiting_review", "accepted", "rejected"]
        reviews = spec.events_of("awaiting_review")["review"]
        assert [e.transitions_to for e in reviews] == ["accepted", "rejected"]
        assert reviews[1].guards == ()

    def test_list_form_and_hooks(self, actions):
        seen = []
        actions.register("log", lambda host, *args, **kwargs: seen.append(args))
        spec = build_specification(
            {
                "states": [
                    {"name": "a", "events": [{"name": "go", "to": "b"}], "on_exit": "log"},
                    "b",
                ],
                "hooks": {"after_transition": ["log"]},
            },
            name="listed",
            actions=actions,
        )

        assert spec.name == "listed"
        assert len(spec.state("a").on_exit) == 1
        assert len(spec.after_transition) == 1

    def test_unknown_hook_name(self):
        with pytest.raises(BuildError, match="Unknown hook 'on_whatever'"):
            build_specification({"states": ["a"], "hooks": {"on_whatever": []}})

    def test_not_a_mapping(self):
        with pytest.raises(BuildError):
            build_specification(["a", "b"])  # type: ignore[arg-type]

    def test_guard_and_guards_are_combined(self, guards):
        never = lambda host: False  # noqa: E731
        always = lambda host: True  # noqa: E731
        guards.register("never", never)
        guards.register("always", always)

        spec = build_specification(
            {"states": {"a": {"events": {"go": {"to": "b", "guard": "never", "guards": ["always"]}}}, "b": None}},
            guards=guards,
        )

        assert spec.state("a").event("go").guards == (never, always)

    def test_fluent_and_mapping_guards_agree(self, guards):
        first = lambda host: True  # noqa: E731
        second = lambda host: True  # noqa: E731
        fluent = (
            SpecificationBuilder("same")
            .state("a").event("go", to="b", guard=first, guards=[second])
            .state("b")
            .build()
        )
        mapped = build_specification(
            {"states": [{"name": "a", "events": [{"name": "go", "to": "b", "guard": first, "guards": second}]}, "b"]},
        )

        assert fluent.state("a").event("go").guards == mapped.state("a").event("go").guards

    @pytest.mark.parametrize(
        "states, message",
        [
            ({"a": "oops"}, "Body of state 'a' must be a mapping"),
            ({"a": ["x"]}, "Body of state 'a' must be a mapping"),
            ({"a": {"events": {"go": 42}}}, "Event 'go' in state 'a' must be a target name or a mapping"),
            ({"a": {"events": {"go": ["b"]}}}, "Event 'go' in state 'a' must be a target name or a mapping"),
        ],
    )
    def test_malformed_bodies_raise_build_error(self, states, message):
        with pytest.raises(BuildError, match=message):
            build_specification({"states": states})

    def test_spec_scoped_entry_and_exit_hooks(self, actions):
        entered = lambda host, *a, **kw: None  # noqa: E731
        left = lambda host, *a, **kw: None  # noqa: E731
        actions.register("entered", entered)
        actions.register("left", left)

        spec = build_specification(
            {"states": ["a"], "hooks": {"on_entry": "entered", "on_exit": ["left"]}},
            actions=actions,
        )

        assert spec.on_entry == (entered,)
        assert spec.on_exit == (left,)
        assert spec.state("a").on_entry == ()

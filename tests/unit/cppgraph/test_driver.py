# tests/unit/cppgraph/test_driver.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""
Unit tests for cppgraph.driver.

Tests the two-pass ingestion over the classes.hpp / shapes.cpp / sample.cpp
fixtures and the graph properties a build must satisfy: merge idempotence,
scope round-trip, acyclicity, override reachability, enum leak-through,
template vs instantiation sites, forward references and external bases.
"""

import pytest

from cppgraph.config import GraphConfig
from cppgraph.declarations import TranslationUnit, load_declarations
from cppgraph.driver import IngestionDriver, ingest_translation_units
from cppgraph.errors import StoreCapacityExceeded
from cppgraph.graph import queries
from cppgraph.graph.models import EdgeKind, EntityKind
from cppgraph.graph.scope import Unresolved


def _id(driver, name):
    return driver.resolver.resolve("::" + name)


def _ingest(yaml_text, **config):
    driver = IngestionDriver(config=GraphConfig(**config))
    report = driver.ingest(load_declarations(yaml_text))
    return driver, report


def _snapshot(store):
    return set(store.entities), set(store.all_edges())


class TestShapesHeader:
    """Ingestion of classes.hpp."""

    def test_counts(self, classes_unit):
        """30 entities: root, namespace, 4 classes, 2 enums and their members."""
        driver = IngestionDriver()
        report = driver.ingest(classes_unit)
        assert report.entities == 30
        # 29 contains, 2 inherits, 4 overrides, 2 references
        assert report.edges == 37
        assert report.merges == 0
        assert report.ok

    def test_contains_forest(self, shapes_driver):
        """Every entity but the root has exactly one contains parent."""
        store = shapes_driver.store
        for entity in store.all_entities():
            parents = store.edges_to(entity.id, EdgeKind.CONTAINS)
            if entity.id == shapes_driver.root_id:
                assert parents == []
            else:
                assert len(parents) == 1, entity.display_name

    def test_kinds(self, shapes_driver):
        """Declarations keep their kinds."""
        store = shapes_driver.store
        assert store.entity(_id(shapes_driver, "shapes")).kind is EntityKind.NAMESPACE
        assert store.entity(_id(shapes_driver, "shapes::Point")).kind is EntityKind.STRUCT
        assert store.entity(_id(shapes_driver, "shapes::Color")).kind is EntityKind.ENUM_CLASS
        assert store.entity(_id(shapes_driver, "shapes::Status::Done")).kind is EntityKind.ENUMERATOR
        assert store.entity(_id(shapes_driver, "shapes::Circle::area")).kind is EntityKind.METHOD

    def test_inherits_metadata(self, shapes_driver):
        """Circle inherits publicly and non-virtually from Shape."""
        edges = shapes_driver.store.edges_from(_id(shapes_driver, "shapes::Circle"), EdgeKind.INHERITS)
        assert len(edges) == 1
        assert edges[0].target == _id(shapes_driver, "shapes::Shape")
        assert edges[0].meta == {"access": "public", "virtual": "false"}

    def test_override_reachability(self, shapes_driver):
        """Shape::area is overridden by exactly Circle::area and Rectangle::area."""
        store = shapes_driver.store
        area = _id(shapes_driver, "shapes::Shape::area")
        overriders = {e.source for e in store.edges_to(area, EdgeKind.OVERRIDES)}
        assert overriders == {
            _id(shapes_driver, "shapes::Circle::area"),
            _id(shapes_driver, "shapes::Rectangle::area"),
        }
        assert set(store.overriders(area)) == overriders

    def test_abstractness(self, shapes_driver):
        """Shape is abstract; Circle and Rectangle are concrete."""
        store = shapes_driver.store
        assert store.entity(_id(shapes_driver, "shapes::Shape")).is_abstract
        assert not store.entity(_id(shapes_driver, "shapes::Circle")).is_abstract
        assert not store.entity(_id(shapes_driver, "shapes::Rectangle")).is_abstract

    def test_member_access(self, shapes_driver):
        """Access specifiers are recorded; the struct default is public."""
        store = shapes_driver.store
        assert store.entity(_id(shapes_driver, "shapes::Circle::radius_")).access == "private"
        assert store.entity(_id(shapes_driver, "shapes::Circle::area")).access == "public"
        assert store.entity(_id(shapes_driver, "shapes::Point::x")).access == "public"

    def test_unscoped_enum_leak_through(self, shapes_driver):
        """Pending resolves bare and qualified from shapes; Red only qualified."""
        resolver = shapes_driver.resolver
        in_shapes = resolver.frames_for(("shapes",))
        pending = resolver.resolve("shapes::Pending")
        assert pending
        assert resolver.resolve("Pending", in_shapes) == pending
        assert resolver.resolve("Status::Pending", in_shapes) == pending
        assert resolver.resolve("shapes::Color::Red")
        assert resolver.resolve("Red", in_shapes) is Unresolved

    def test_scope_round_trip(self, shapes_driver):
        """Every entity re-resolves from its qualified name to its own id."""
        store = shapes_driver.store
        for entity in store.all_entities():
            if entity.id == shapes_driver.root_id:
                continue
            assert _id(shapes_driver, entity.display_name) == entity.id, entity.display_name


class TestOutOfLineDefinitions:
    """A header followed by a translation unit defining its methods."""

    def test_definitions_merge(self, shapes_driver, shapes_impl_unit):
        """Out-of-line definitions merge into the in-class declarations."""
        report = shapes_driver.ingest(shapes_impl_unit)
        store = shapes_driver.store
        area = store.entity(_id(shapes_driver, "shapes::Circle::area"))

        assert report.merges == 4
        assert report.entities == 31
        assert [str(loc) for loc in area.declarations] == ["classes.hpp:28:0", "shapes.cpp:5:0"]
        assert area.is_defined
        assert area.access == "public"

    def test_definition_bodies_see_class_members(self, shapes_driver, shapes_impl_unit):
        """Uses inside Circle::area resolve against Circle's members."""
        shapes_driver.ingest(shapes_impl_unit)
        store = shapes_driver.store
        area = _id(shapes_driver, "shapes::Circle::area")
        targets = [e.target for e in store.edges_from(area, EdgeKind.REFERENCES)]
        assert targets == [_id(shapes_driver, "shapes::Circle::radius_")]

    def test_enumerator_references(self, shapes_driver, shapes_impl_unit):
        """describe() references the leaked Pending and the qualified Color::Red."""
        report = shapes_driver.ingest(shapes_impl_unit)
        store = shapes_driver.store
        describe = _id(shapes_driver, "shapes::describe")
        targets = [e.target for e in store.edges_from(describe, EdgeKind.REFERENCES)]
        assert targets == [
            _id(shapes_driver, "shapes::Status"),
            _id(shapes_driver, "shapes::Status::Pending"),
            _id(shapes_driver, "shapes::Color::Red"),
        ]
        assert report.unresolved == []

    CENTER = """
file: circle.cpp
declarations:
  - kind: namespace
    name: geo
    location: 1
    children:
      - {kind: struct, name: Point, location: 2, is_definition: true}
  - kind: namespace
    name: shapes
    location: 4
    children:
      - {kind: struct, name: Point, location: 5, is_definition: true}
      - kind: class
        name: Circle
        location: 6
        is_definition: true
        children:
          - {kind: method, name: center, access: public, location: 7, signature: {return_type: Point, qualifiers: [const]}}
      - kind: function
        name: center
        scope: [Circle]
        location: 10
        is_definition: true
        signature: {return_type: "%s", qualifiers: [const]}
"""

    def test_qualified_return_type_merges(self):
        """Point in the class and shapes::Point on the definition are one type."""
        driver, report = _ingest(self.CENTER % "shapes::Point")
        centers = [
            e for e in driver.store.all_entities() if e.qualified_name == ("shapes", "Circle", "center")
        ]
        assert len(centers) == 1
        assert centers[0].is_defined
        assert [loc.line for loc in centers[0].declarations] == [7, 10]
        assert report.contentions == []

    def test_different_return_type_is_a_contention(self):
        """A definition returning geo::Point does not match Point in shapes."""
        driver, report = _ingest(self.CENTER % "geo::Point")
        centers = [
            e for e in driver.store.all_entities() if e.qualified_name == ("shapes", "Circle", "center")
        ]
        assert sorted(e.discriminator for e in centers) == [0, 1]
        assert len(report.contentions) == 1


class TestSample:
    """Ingestion of sample.cpp."""

    @pytest.fixture
    def built(self, sample_unit):
        driver = IngestionDriver()
        report = driver.ingest(sample_unit)
        return driver, report

    def test_template_entity(self, built):
        """Container is a template wrapping a class."""
        driver, _ = built
        container = driver.store.entity(_id(driver, "myproject::Container"))
        assert container.kind is EntityKind.TEMPLATE
        assert container.templated_kind is EntityKind.CLASS
        assert container.template_params == ("T",)

    def test_instantiation_site(self, built):
        """Container<int> in main is a site instantiating Container; two uses merge."""
        driver, report = built
        store = driver.store
        site = _id(driver, "myproject::Container<int>")
        container = _id(driver, "myproject::Container")
        main = _id(driver, "myproject::main")

        entity = store.entity(site)
        assert entity.kind is EntityKind.INSTANTIATION_SITE
        assert entity.template_args == ("int",)
        assert len(entity.declarations) == 2
        edges = store.edges_from(site, EdgeKind.INSTANTIATES)
        assert [e.target for e in edges] == [container]
        assert edges[0].meta == {"arguments": "int"}
        assert store.parent_of(site) == _id(driver, "myproject")
        assert store.has_edge(driver.builder.references(main, site))
        assert report.merges >= 1

    def test_template_parameters_not_entities(self, built):
        """T never becomes an entity and is never reported unresolved."""
        driver, report = built
        assert not any(e.name == "T" for e in driver.store.all_entities())
        assert "T" not in report.unresolved_names

    def test_forward_member_reference(self, built):
        """Methods using a field declared after them still reference it."""
        driver, _ = built
        store = driver.store
        add = _id(driver, "myproject::Container::add")
        items = _id(driver, "myproject::Container::items")
        assert items in [e.target for e in store.edges_from(add, EdgeKind.REFERENCES)]

    def test_override_in_class(self, built):
        """Derived::process overrides Base::process; Base is abstract, Derived is not."""
        driver, _ = built
        store = driver.store
        process = _id(driver, "myproject::Base::process")
        assert store.overriders(process) == [_id(driver, "myproject::Derived::process")]
        assert store.entity(_id(driver, "myproject::Base")).is_abstract
        assert not store.entity(_id(driver, "myproject::Derived")).is_abstract

    def test_std_names_are_external(self, built):
        """Names from the standard library become external placeholders."""
        driver, report = built
        assert report.unresolved_names == [
            "std::vector",
            "std::make_unique",
            "std::move",
            "std::cout",
            "std::endl",
            "std::cout",
            "std::endl",
        ]
        cout = report.unresolved[3]
        placeholder = driver.store.entity(cout.placeholder_id)
        assert placeholder.kind is EntityKind.EXTERNAL
        assert placeholder.qualified_name == ("std", "cout")
        assert driver.store.parent_of(placeholder.id) == driver.root_id
        assert cout.edge_kind == "references"
        assert cout.location == "sample.cpp:44:0"

    def test_external_template_site(self, built):
        """std::make_unique<Derived> instantiates an external placeholder."""
        driver, _ = built
        store = driver.store
        site = _id(driver, "myproject::make_unique<Derived>")
        target = store.entity(store.edges_from(site, EdgeKind.INSTANTIATES)[0].target)
        assert target.kind is EntityKind.EXTERNAL
        assert target.qualified_name == ("std", "make_unique")

    def test_dependent_site_inside_template(self, built):
        """std::vector<T> inside Container is a site scoped to Container."""
        driver, _ = built
        site = _id(driver, "myproject::Container::vector<T>")
        assert driver.store.parent_of(site) == _id(driver, "myproject::Container")

    def test_scope_round_trip(self, built):
        """Every declared entity re-resolves to itself (externals are unnamed)."""
        driver, _ = built
        for entity in driver.store.all_entities():
            if entity.id == driver.root_id or entity.kind is EntityKind.EXTERNAL:
                continue
            assert _id(driver, entity.display_name) == entity.id, entity.display_name


class TestInstantiationSites:
    """Sites are keyed on the template a use binds to, not on its spelling."""

    SPELLINGS = """
file: run.cpp
declarations:
  - kind: namespace
    name: shapes
    location: 1
    children:
      - {kind: class, name: Container, template_params: [T], location: 2, is_definition: true}
      - kind: function
        name: run
        location: 4
        is_definition: true
        signature: {return_type: void}
        uses:
          - {name: Container, template_args: [int], location: 5}
          - {name: shapes::Container, template_args: [int], location: 6}
          - {name: "::shapes::Container", template_args: [int], location: 7}
          - {name: Box, template_args: [int], location: 8}
          - {name: shapes::Box, template_args: [int], location: 9}
      - {kind: class, name: Box, template_params: [T], location: 12, is_definition: true}
"""

    def test_qualified_spellings_share_a_site(self):
        """Container<int> written three ways in one scope is one site."""
        driver, report = _ingest(self.SPELLINGS)
        store = driver.store
        sites = [e for e in store.all_entities() if e.kind is EntityKind.INSTANTIATION_SITE]
        assert sorted(e.name for e in sites) == ["Box<int>", "Container<int>"]

        site = store.entity(_id(driver, "shapes::Container<int>"))
        assert site.raw_text == "shapes::Container"
        assert [loc.line for loc in site.declarations] == [5, 6, 7]
        edges = store.edges_from(site.id, EdgeKind.INSTANTIATES)
        assert [e.target for e in edges] == [_id(driver, "shapes::Container")]
        assert report.unresolved == []

    def test_forward_template_sites_merge(self):
        """Uses of a template declared later merge once it binds."""
        driver, _ = _ingest(self.SPELLINGS)
        store = driver.store
        site = store.entity(_id(driver, "shapes::Box<int>"))
        assert site.raw_text == "shapes::Box"
        assert [loc.line for loc in site.declarations] == [8, 9]
        edges = store.edges_from(site.id, EdgeKind.INSTANTIATES)
        assert [e.target for e in edges] == [_id(driver, "shapes::Box")]
        run = _id(driver, "shapes::run")
        assert store.has_edge(driver.builder.references(run, site.id))


class TestIdempotence:
    """Re-ingesting a snapshot does not change the graph."""

    def test_same_driver_twice(self, classes_unit, sample_unit):
        """Ingesting the same source twice yields the same ids and edges."""
        driver = IngestionDriver()
        driver.ingest(classes_unit)
        driver.ingest(sample_unit)
        once = _snapshot(driver.store)

        driver.ingest(classes_unit)
        driver.ingest(sample_unit)

        assert _snapshot(driver.store) == once

    def test_fresh_drivers_agree(self, sample_unit):
        """Independent builds of the same source assign the same ids."""
        first, second = IngestionDriver(), IngestionDriver()
        first.ingest(sample_unit)
        second.ingest(sample_unit)
        assert _snapshot(first.store) == _snapshot(second.store)

    def test_driver_over_existing_store(self, classes_unit, shapes_impl_unit):
        """A new driver over a built store resolves its names."""
        first = IngestionDriver()
        first.ingest(classes_unit)
        second = IngestionDriver(store=first.store)
        report = second.ingest(shapes_impl_unit)
        assert report.merges == 4
        assert report.unresolved == []


class TestResolutionOrder:
    """Two-pass resolution of forward and unknown names."""

    def test_forward_base_reference(self):
        """A base declared after its derived class still gets an inherits edge."""
        driver, report = _ingest("""
file: fwd.hpp
declarations:
  - kind: class
    name: Derived
    bases: [{name: Base, access: public}]
    children:
      - {kind: method, name: run, signature: {return_type: void, qualifiers: [override]}}
  - kind: class
    name: Base
    children:
      - {kind: method, name: run, signature: {return_type: void, qualifiers: [virtual]}}
""")
        store = driver.store
        assert store.bases_of(_id(driver, "Derived")) == [_id(driver, "Base")]
        assert store.overriders(_id(driver, "Base::run")) == [_id(driver, "Derived::run")]
        assert report.unresolved == []
        assert report.unmatched_overrides == []

    def test_unresolved_external_base(self):
        """An undeclared base becomes an external placeholder and one report entry."""
        driver, report = _ingest("""
file: ext.hpp
declarations:
  - kind: class
    name: Widget
    bases: [{name: QObject}]
""")
        store = driver.store
        edges = store.edges_from(_id(driver, "Widget"), EdgeKind.INHERITS)
        assert len(edges) == 1
        assert edges[0].meta["access"] == "private"
        external = store.entity(edges[0].target)
        assert external.kind is EntityKind.EXTERNAL
        assert external.qualified_name == ("QObject",)
        assert len(report.unresolved) == 1
        assert report.unresolved[0].edge_kind == "inherits"
        assert not report.ok

    def test_unmatched_override_reported(self):
        """A method marked override without a base virtual gets no edge but a report entry."""
        driver, report = _ingest("""
file: o.hpp
declarations:
  - kind: class
    name: Lonely
    children:
      - {kind: method, name: tick, signature: {return_type: void, qualifiers: [override]}}
""")
        assert driver.store.edges_from(_id(driver, "Lonely::tick"), EdgeKind.OVERRIDES) == []
        assert report.unmatched_overrides == ["Lonely::tick"]

    def test_unmarked_overrides_can_be_disabled(self):
        """With best-effort matching off only methods marked override are matched."""
        source = """
file: u.hpp
declarations:
  - kind: class
    name: Derived
    bases: [{name: Base}]
    children:
      - {kind: method, name: f, signature: {return_type: void}}
  - kind: class
    name: Base
    children:
      - {kind: method, name: f, signature: {return_type: void, qualifiers: [virtual]}}
"""
        on, _ = _ingest(source)
        off, report = _ingest(source, match_unmarked_overrides=False)
        assert on.store.overriders(_id(on, "Base::f")) == [_id(on, "Derived::f")]
        assert off.store.overriders(_id(off, "Base::f")) == []
        assert report.unmatched_overrides == []

    def test_using_directive_resolves(self):
        """using namespace makes a namespace's classes usable as bases."""
        driver, report = _ingest("""
file: u.cpp
declarations:
  - kind: namespace
    name: lib
    children:
      - {kind: class, name: Base}
  - {kind: using, name: lib, is_directive: true}
  - kind: class
    name: App
    bases: [{name: Base, access: public}]
""")
        assert driver.store.bases_of(_id(driver, "App")) == [_id(driver, "lib::Base")]
        assert report.unresolved == []


class TestSoftFailures:
    """Malformed input, cycles and contentions are reported, never fatal."""

    def test_malformed_signature(self):
        """An unparseable signature becomes kind=unknown with its raw text."""
        driver, report = _ingest("""
file: bad.cpp
declarations:
  - kind: function
    name: broken
    signature: {parameters: ["int[["], return_type: void}
""")
        unknown = [e for e in driver.store.all_entities() if e.kind is EntityKind.UNKNOWN]
        assert len(unknown) == 1
        assert unknown[0].qualified_name == ("broken",)
        assert unknown[0].raw_text == "void(int[[)"
        assert len(report.malformed) == 1
        assert report.malformed[0].symbol == "broken"

    def test_inheritance_cycle(self):
        """A cycle is rejected at its closing edge and reported."""
        driver, report = _ingest("""
file: cyc.hpp
declarations:
  - {kind: class, name: A, bases: [{name: B}]}
  - {kind: class, name: B, bases: [{name: A}]}
""")
        assert len(report.cycles) == 1
        assert report.cycles[0].kind == "InheritanceCycleDetected"
        assert queries.inheritance_cycles(driver.store) == []
        assert driver.store.bases_of(_id(driver, "B")) == [_id(driver, "A")]
        assert driver.store.bases_of(_id(driver, "A")) == []

    def test_conflicting_overloads(self):
        """Same parameters, different return types: both kept as siblings."""
        driver, report = _ingest("""
file: c.hpp
declarations:
  - {kind: function, name: f, signature: {return_type: int}}
  - {kind: function, name: f, signature: {return_type: long}}
""")
        functions = [e for e in driver.store.all_entities() if e.name == "f"]
        assert len(functions) == 2
        assert sorted(e.discriminator for e in functions) == [0, 1]
        assert len(report.contentions) == 1

    def test_conflicting_overloads_seen_again(self):
        """A contention already in the graph is merged, not reported twice."""
        unit = load_declarations("""
file: c.hpp
declarations:
  - {kind: function, name: f, signature: {return_type: int}}
  - {kind: function, name: f, signature: {return_type: long}}
""")
        driver = IngestionDriver()
        first = driver.ingest(unit)
        second = driver.ingest(unit)
        assert len(first.contentions) == 1
        assert second.contentions == []
        assert second.merges == 2
        assert second.entities == first.entities

    def test_anonymous_namespace(self):
        """An unnamed namespace gets the anonymous name."""
        driver, _ = _ingest("""
file: anon.cpp
declarations:
  - kind: namespace
    name: ""
    children:
      - {kind: function, name: hidden}
""")
        assert _id(driver, "(anonymous)::hidden")

    def test_unresolved_qualifier_gets_implicit_scope(self):
        """A definition qualified by an unknown name still has a contains parent."""
        driver, _ = _ingest("""
file: q.cpp
declarations:
  - {kind: function, name: run, scope: [Missing], signature: {return_type: void}}
""")
        run = _id(driver, "Missing::run")
        parent = driver.store.entity(driver.store.parent_of(run))
        assert parent.qualified_name == ("Missing",)
        assert parent.kind is EntityKind.NAMESPACE

    def test_capacity_is_fatal(self, classes_unit):
        """Running out of store capacity aborts the build."""
        driver = IngestionDriver(config=GraphConfig(max_entities=5))
        with pytest.raises(StoreCapacityExceeded):
            driver.ingest(classes_unit)


class TestParallelIngestion:
    """Tests for ingest_translation_units."""

    def test_parallel_matches_sequential(self, classes_unit, shapes_impl_unit, sample_unit):
        """Merging partial graphs gives the same graph as one sequential build."""
        shapes_tu = TranslationUnit(
            file="shapes.cpp",
            declarations=classes_unit.declarations + shapes_impl_unit.declarations,
        )
        sequential = IngestionDriver()
        sequential.ingest(classes_unit)
        sequential.ingest(shapes_impl_unit)
        sequential.ingest(sample_unit)

        store, report = ingest_translation_units(
            [shapes_tu, sample_unit, classes_unit], config=GraphConfig(parallel_workers=3)
        )

        assert _snapshot(store) == _snapshot(sequential.store)
        assert report.entities == len(store)
        assert report.edges == store.edge_count
        assert report.contentions == []

    def test_parallel_keeps_abstractness(self, classes_unit):
        """is_abstract is recomputed on the merged graph."""
        store, _ = ingest_translation_units([classes_unit, classes_unit])
        shape = next(e for e in store.all_entities() if e.qualified_name == ("shapes", "Shape"))
        circle = next(e for e in store.all_entities() if e.qualified_name == ("shapes", "Circle"))
        assert shape.is_abstract
        assert not circle.is_abstract

    def test_parallel_contention(self):
        """Incompatible declarations from two units are kept and reported."""
        first = load_declarations("""
file: a.cpp
declarations:
  - {kind: function, name: f, signature: {return_type: int}}
""")
        second = load_declarations("""
file: b.cpp
declarations:
  - {kind: function, name: f, signature: {return_type: long}}
""")
        store, report = ingest_translation_units([first, second])
        assert len([e for e in store.all_entities() if e.name == "f"]) == 2
        assert len(report.contentions) == 1

    def test_names_from_other_units_relink(self):
        """A base and its pure virtual declared in another unit bind after the merge."""
        header = load_declarations("""
file: shape.hpp
declarations:
  - kind: namespace
    name: shapes
    children:
      - kind: class
        name: Shape
        is_definition: true
        children:
          - {kind: method, name: area, access: public, signature: {return_type: double, qualifiers: [const, virtual, pure]}}
""")
        source = load_declarations("""
file: circle.cpp
declarations:
  - kind: namespace
    name: shapes
    children:
      - kind: class
        name: Circle
        is_definition: true
        bases: [{name: Shape, access: public}]
        children:
          - {kind: method, name: area, access: public, signature: {return_type: double, qualifiers: [const, override]}}
      - kind: function
        name: make
        signature: {return_type: void}
        uses:
          - {name: Shape}
""")
        store, report = ingest_translation_units([header, source])

        def by_name(*name):
            return next(e for e in store.all_entities() if e.qualified_name == name)

        shape, circle = by_name("shapes", "Shape"), by_name("shapes", "Circle")
        make = by_name("shapes", "make")
        assert store.bases_of(circle.id) == [shape.id]
        assert store.overriders(by_name("shapes", "Shape", "area").id) == [
            by_name("shapes", "Circle", "area").id
        ]
        assert [e.target for e in store.edges_from(make.id, EdgeKind.REFERENCES)] == [shape.id]
        assert report.unresolved == []
        assert report.unmatched_overrides == []
        assert not any(e.kind is EntityKind.EXTERNAL for e in store.all_entities())
        assert shape.is_abstract
        assert not circle.is_abstract

"""Адаптер Elasticsearch и стратегия поиска."""

from unittest.mock import MagicMock

import pytest

from conftest import FakeEngine, make_place, make_street
from geocoder.models import (
    EXACT_MATCH_PLACETYPE,
    STREET_PLACETYPE,
    FulltextQuery,
    GeoPoint,
    PlaceType,
)
from geocoder.search import FUZZY_ACTIVE, ElasticsearchFulltextEngine, SearchStrategy


class TestElasticsearchEngine:

    def _response(self, hits, total=None):
        return {"hits": {"total": {"value": total if total is not None else len(hits)}, "hits": hits}}

    def test_query_body(self):
        engine = ElasticsearchFulltextEngine(MagicMock(), "places")
        body = engine.build_body(FulltextQuery(
            text="Main St",
            placetypes=STREET_PLACETYPE,
            country_code="us",
            point=GeoPoint(lat=39.78, lon=-89.65),
            radius=5000,
            fuzzy=True,
            all_words_required=False,
            size=20,
        ))
        match = body["query"]["bool"]["must"][0]["multi_match"]
        assert match["query"] == "Main St"
        assert match["operator"] == "or"
        assert match["fuzziness"] == "AUTO"
        filters = body["query"]["bool"]["filter"]
        assert {"terms": {"placetype": ["Street"]}} in filters
        assert {"term": {"country_code": "US"}} in filters
        assert filters[-1]["geo_distance"]["distance"] == "5000.0m"
        assert body["size"] == 20

    def test_strict_query_requires_all_words(self):
        engine = ElasticsearchFulltextEngine(MagicMock(), "places")
        body = engine.build_body(FulltextQuery(text="Paris", placetypes=EXACT_MATCH_PLACETYPE))
        match = body["query"]["bool"]["must"][0]["multi_match"]
        assert match["operator"] == "and"
        assert "fuzziness" not in match
        assert "should" not in body["query"]["bool"]

    def test_hits_become_candidates(self):
        es = MagicMock()
        es.search.return_value = self._response([
            {
                "_id": "42",
                "_score": 7.5,
                "_source": {
                    "placetype": "Street",
                    "name": "Main St",
                    "is_in": "Springfield",
                    "location": {"lat": 39.78, "lon": -89.65},
                    "house_numbers": [{"number": "10", "location": {"lat": 39.78, "lon": -89.65}}],
                },
            },
            {"_id": "bad", "_score": 1.0, "_source": {"placetype": "Planet"}},
        ], total=2)
        engine = ElasticsearchFulltextEngine(es, "places", request_timeout=5)
        results = engine.execute_query(FulltextQuery(text="Main St", placetypes=STREET_PLACETYPE))

        es.search.assert_called_once()
        assert es.search.call_args.kwargs["index"] == "places"
        assert results.num_found == 2
        assert len(results.results) == 1
        candidate = results.results[0]
        assert candidate.placetype == PlaceType.STREET
        assert candidate.score == 7.5
        assert candidate.feature_id == 42
        assert (candidate.lat, candidate.lng) == (39.78, -89.65)
        assert candidate.house_numbers[0].number == "10"

    def test_transport_error_gives_empty_results(self):
        es = MagicMock()
        es.search.side_effect = ConnectionError("down")
        engine = ElasticsearchFulltextEngine(es, "places")
        results = engine.execute_query(FulltextQuery(text="Paris"))
        assert results.results == []
        assert results.num_found == 0


class TestSearchStrategy:

    def test_exact_filter_by_name(self):
        engine = FakeEngine().on(PlaceType.CITY, [
            make_place(name="Springfield", feature_id=1),
            make_place(name="Springfield Gardens", feature_id=2),
            make_place(name="Sprngfld", name_alternates=["Springfield"], feature_id=3),
        ])
        strategy = SearchStrategy(engine)
        found = strategy.do_search_exact("Springfield", None, False)
        assert [c.feature_id for c in found] == [1, 3]
        query = engine.queries[0]
        assert query.placetypes == EXACT_MATCH_PLACETYPE
        assert query.all_words_required
        assert query.size == 10

    def test_gb_postcode_keeps_everything(self):
        engine = FakeEngine().on(PlaceType.CITY, [make_place(name="Westminster", country_code="GB")])
        strategy = SearchStrategy(engine)
        assert len(strategy.do_search_exact("SW1A 2AA", "GB", False)) == 1

    def test_overrides_are_pluggable(self):
        engine = FakeEngine().on(PlaceType.CITY, [make_place(name="Westminster", country_code="GB")])
        strategy = SearchStrategy(engine, exact_match_overrides=[])
        assert strategy.do_search_exact("SW1A 2AA", "GB", False) == []
        keep_all = SearchStrategy(engine, exact_match_overrides=[lambda text: text.startswith("!")])
        assert len(keep_all.do_search_exact("!anything", None, False)) == 1

    def test_match_names_and_zipcodes(self):
        engine = FakeEngine().on(PlaceType.CITY, [make_place(name="Springfield", zipcodes=["62701"])])
        strategy = SearchStrategy(engine)
        assert len(strategy.do_search_exact("Springfield, IL, United States", "US", False, match_names=["Springfield"])) == 1
        assert len(strategy.do_search_exact("62701, United States", "US", False, match_names=["62701"])) == 1

    def test_single_word_short_circuit(self):
        engine = FakeEngine().on(PlaceType.CITY, [make_place()]).on(PlaceType.STREET, [make_street()])
        results = SearchStrategy(engine).do_search("Springfield", "US", False, None, False)
        assert results.num_found == 1
        assert results.result[0].city == "Springfield"
        assert all(PlaceType.STREET not in q.placetypes for q in engine.queries)
        assert results.message is None

    def test_exact_then_streets(self):
        engine = FakeEngine().on(PlaceType.CITY, []).on(PlaceType.STREET, [make_street()])
        results = SearchStrategy(engine).do_search("Main St Springfield", "US", True, None, False)
        assert [q.placetypes for q in engine.queries] == [EXACT_MATCH_PLACETYPE, STREET_PLACETYPE]
        street_query = engine.queries[1]
        assert not street_query.all_words_required
        assert street_query.size == 20
        assert results.result[0].street_name == "Main St"

    def test_exact_results_come_first(self):
        engine = FakeEngine().on(PlaceType.CITY, [make_place(name="Main St Springfield")]).on(PlaceType.STREET, [make_street()])
        results = SearchStrategy(engine).do_search("Main St Springfield", "US", True, None, False)
        assert results.result[0].city == "Main St Springfield"
        assert results.result[1].street_name == "Main St"

    def test_smart_street_skips_exact_phase(self):
        engine = FakeEngine().on(PlaceType.STREET, [make_street(name="rue de la Paix", country_code="FR")])
        results = SearchStrategy(engine).do_search("rue de la Paix", "FR", True, None, False, smart_street_detected=True)
        assert [q.placetypes for q in engine.queries] == [STREET_PLACETYPE]
        assert results.num_found == 1

    def test_proximity_goes_to_street_phase(self):
        engine = FakeEngine()
        point = GeoPoint(lat=48.85, lon=2.35)
        SearchStrategy(engine).do_search("rue de la Paix", "FR", True, None, False, point=point, radius=1000)
        assert engine.queries[-1].point == point
        assert engine.queries[-1].radius == 1000

    def test_proximity_goes_to_exact_phase(self):
        engine = FakeEngine()
        point = GeoPoint(lat=48.85, lon=2.35)
        SearchStrategy(engine).do_search("Paris 8e", "FR", True, None, False, point=point, radius=1000)
        exact_query = engine.queries[0]
        assert exact_query.placetypes == EXACT_MATCH_PLACETYPE
        assert exact_query.point == point
        assert exact_query.radius == 1000

    @pytest.mark.parametrize("primary_score,alternate_score,expected", [
        (5.0, 8.0, "Goethe straße"),
        (8.0, 5.0, "Goethestraße"),
        (5.0, 5.0, "Goethestraße"),
    ])
    def test_alternate_form(self, primary_score, alternate_score, expected):
        primary = make_street(name="Goethestraße", is_in="Berlin", country_code="DE", score=primary_score)
        alternate = make_street(name="Goethe straße", is_in="Berlin", country_code="DE", score=alternate_score)
        engine = (FakeEngine()
                  .on(PlaceType.STREET, [primary], text="Goethestraße")
                  .on(PlaceType.STREET, [alternate], text="Goethe straße"))
        results = SearchStrategy(engine).do_search(
            "Goethestraße", "DE", True, None, False,
            alternate_text="Goethe straße", smart_street_detected=True,
        )
        assert results.num_found == 1
        assert results.result[0].street_name == expected

    def test_alternate_used_when_primary_empty(self):
        alternate = make_street(name="Goethe straße", is_in="Berlin", country_code="DE", score=1.0)
        engine = FakeEngine().on(PlaceType.STREET, [alternate], text="Goethe straße")
        results = SearchStrategy(engine).do_search(
            "Goethestraße", "DE", True, None, False,
            alternate_text="Goethe straße", smart_street_detected=True,
        )
        assert results.result[0].street_name == "Goethe straße"

    def test_fuzzy_marker(self):
        engine = FakeEngine().on(PlaceType.STREET, [make_street()])
        results = SearchStrategy(engine).do_search("Main St", "US", True, None, True)
        assert results.message == FUZZY_ACTIVE
        assert all(q.fuzzy for q in engine.queries)

"""Построение адресов из кандидатов и склейка кусков улиц."""

import pytest

from conftest import house, make_place, make_street
from geocoder.addresses import AddressBuilder, build_addresses, resolve_state
from geocoder.models import GeocodingLevel, PlaceType


@pytest.fixture
def builder():
    return AddressBuilder()


class TestEmptyInput:

    def test_empty_list(self, builder):
        results = builder.build([], "10")
        assert results.num_found == 0
        assert results.result == []

    def test_none(self, builder):
        assert builder.build(None, None).num_found == 0


class TestStreetGrouping:

    def test_close_segments_collapse(self, builder):
        # ~500 м по широте
        first = make_street(lat=39.7800, feature_id=1)
        second = make_street(lat=39.7845, feature_id=2)
        results = builder.build([first, second], None)
        assert results.num_found == 1
        assert results.result[0].id == 1
        assert results.result[0].street_name == "Main St"

    def test_far_segments_stay_separate(self, builder):
        # ~20 км по широте
        first = make_street(lat=39.78, feature_id=1)
        second = make_street(lat=39.96, feature_id=2)
        results = builder.build([first, second], None)
        assert results.num_found == 2
        assert [a.id for a in results.result] == [1, 2]

    def test_name_is_case_insensitive(self, builder):
        first = make_street(name="Main St", lat=39.7800)
        second = make_street(name="MAIN ST", lat=39.7810)
        assert builder.build([first, second], None).num_found == 1

    def test_different_is_in_are_different_streets(self, builder):
        first = make_street(is_in="Springfield")
        second = make_street(is_in="Shelbyville", lat=39.7801)
        assert builder.build([first, second], None).num_found == 2

    def test_is_in_place_is_part_of_locality(self, builder):
        first = make_street(is_in_place="Downtown")
        second = make_street(is_in_place="Eastside", lat=39.7801)
        assert builder.build([first, second], None).num_found == 2

    def test_non_street_breaks_segment(self, builder):
        first = make_street(lat=39.7800, feature_id=1)
        city = make_place(feature_id=5)
        second = make_street(lat=39.7801, feature_id=3)
        results = builder.build([first, city, second], None)
        assert [a.id for a in results.result] == [1, 5, 3]

    def test_exact_number_later_in_segment_replaces_speculative(self, builder):
        first = make_street(lat=39.7800, feature_id=1, house_numbers=[house("1", 39.7800, -89.65), house("3", 39.7801, -89.65)])
        second = make_street(lat=39.7810, feature_id=2, house_numbers=[house("10", 39.7812, -89.651)])
        results = builder.build([first, second], "10")
        assert results.num_found == 1
        address = results.result[0]
        assert address.id == 2
        assert address.house_number == "10"
        assert address.lat == pytest.approx(39.7812)
        assert address.lng == pytest.approx(-89.651)
        assert address.geocoding_level == GeocodingLevel.HOUSE_NUMBER

    def test_resolved_segment_skips_following_pieces(self, builder):
        first = make_street(lat=39.7800, feature_id=1, house_numbers=[house("10", 39.7801, -89.65)])
        second = make_street(lat=39.7810, feature_id=2, house_numbers=[house("10", 39.7811, -89.65)])
        results = builder.build([first, second], "10")
        assert results.num_found == 1
        assert results.result[0].id == 1
        assert results.result[0].lat == pytest.approx(39.7801)

    def test_unresolved_segment_keeps_first_piece(self, builder):
        first = make_street(lat=39.7800, feature_id=1, house_numbers=[house("2", 39.7801, -89.65)])
        second = make_street(lat=39.7810, feature_id=2, house_numbers=[house("4", 39.7811, -89.65)])
        results = builder.build([first, second], "99")
        assert results.num_found == 1
        assert results.result[0].id == 1
        assert results.result[0].house_number is None
        assert results.result[0].geocoding_level == GeocodingLevel.STREET

    def test_interpolated_number(self, builder):
        street = make_street(
            azimuth_start=90,
            azimuth_end=95,
            house_numbers=[house("8", 39.78, -89.650), house("12", 39.78, -89.649)],
        )
        results = builder.build([street], "10")
        address = results.result[0]
        assert address.house_number == "10"
        assert -89.650 < address.lng < -89.649
        assert address.formatted_full == "10 Main St, Springfield, United States"

    def test_curved_street_keeps_street_coordinate(self, builder):
        street = make_street(
            azimuth_start=0,
            azimuth_end=90,
            house_numbers=[house("8", 39.70, -89.650), house("12", 39.71, -89.649)],
        )
        address = builder.build([street], "10").result[0]
        assert address.house_number is None
        assert address.lat == 39.78

    def test_unnamed_streets_are_not_grouped(self, builder):
        first = make_street(name=None, feature_id=1)
        second = make_street(name=None, lat=39.7801, feature_id=2)
        results = builder.build([first, second], None)
        assert results.num_found == 2
        assert results.result[0].street_name is None
        assert results.result[0].city == "Springfield"


class TestPopulation:

    def test_city(self, builder):
        city = make_place(fully_qualified_name="Springfield, Illinois, United States", adm1_name="Illinois")
        address = builder.build([city], None).result[0]
        assert address.city == "Springfield"
        assert address.name == "Springfield"
        assert address.state == "Illinois"
        assert address.geocoding_level == GeocodingLevel.CITY
        assert address.formatted_full == "Springfield, Illinois, United States"

    def test_city_without_label_gets_generated_one(self, builder):
        city = make_place(adm1_name="Illinois")
        address = builder.build([city], None).result[0]
        assert address.formatted_full == "Springfield, Illinois, United States"

    def test_city_subdivision(self, builder):
        quarter = make_place(placetype=PlaceType.CITY_SUBDIVISION, name="Le Marais", country_code="FR")
        address = builder.build([quarter], None).result[0]
        assert address.quarter == "Le Marais"
        assert address.geocoding_level == GeocodingLevel.CITY

    def test_adm(self, builder):
        adm = make_place(placetype=PlaceType.ADM, name="Illinois", adm1_name="Illinois")
        address = builder.build([adm], None).result[0]
        assert address.state == "Illinois"
        assert address.geocoding_level == GeocodingLevel.ADM

    def test_country(self, builder):
        country = make_place(placetype=PlaceType.COUNTRY, name="France", country_code="FR")
        address = builder.build([country], None).result[0]
        assert address.country == "France"
        assert address.geocoding_level == GeocodingLevel.COUNTRY

    def test_admin_centre_preferred(self, builder):
        city = make_place(lat_admin_centre=39.799, lng_admin_centre=-89.644)
        address = builder.build([city], None).result[0]
        assert (address.lat, address.lng) == (39.799, -89.644)

    def test_ids(self, builder):
        with_osm = builder.build([make_place(feature_id=2, openstreetmap_id=77)], None).result[0]
        assert with_osm.id == 2
        assert with_osm.source_id == 77
        without_osm = builder.build([make_place(feature_id=2)], None).result[0]
        assert without_osm.source_id == 2

    def test_best_zip(self, builder):
        city = make_place(country_code="FR", zipcodes=["75001 CEDEX", "75001"])
        assert builder.build([city], None).result[0].zip_code == "75001"

    def test_street_fields(self, builder):
        street = make_street(
            street_ref="IL-29",
            is_in_place="Downtown",
            is_in_zip=["62701", "62702"],
            is_in_adm="Illinois",
            street_type="RESIDENTIAL",
        )
        address = builder.build([street], None).result[0]
        assert address.street_ref == "IL-29"
        assert address.city == "Springfield"
        assert address.dependent_locality == "Downtown"
        assert address.zip_code == "62701"
        assert address.state == "Illinois"
        assert address.street_type == "RESIDENTIAL"
        assert "RESIDENTIAL" not in address.formatted_postal
        assert address.formatted_postal == "Main St, Downtown, Springfield, Illinois 62701, United States"


class TestStatePolicy:

    def test_adm1_then_adm2(self):
        assert resolve_state(make_place(adm1_name="A1", adm2_name="A2")) == "A1"
        assert resolve_state(make_place(adm2_name="A2")) == "A2"

    def test_france_prefers_department(self):
        city = make_place(name="Lyon", country_code="FR", adm1_name="Auvergne-Rhône-Alpes", adm2_name="Rhône")
        assert resolve_state(city) == "Rhône"

    def test_adm_uses_own_name(self):
        adm = make_place(placetype=PlaceType.ADM, name="Rhône", country_code="FR", adm2_name="Other")
        assert resolve_state(adm) == "Rhône"


class TestCountryResults:

    def test_first_hit_only(self, builder):
        france = make_place(placetype=PlaceType.COUNTRY, name="France", country_code="FR", feature_id=9)
        other = make_place(placetype=PlaceType.COUNTRY, name="French Guiana", country_code="GF")
        results = builder.build_country([france, other])
        assert results.num_found == 1
        address = results.result[0]
        assert address.country == "France"
        assert address.id == 9
        assert address.geocoding_level == GeocodingLevel.COUNTRY

    def test_empty(self, builder):
        assert builder.build_country([]).num_found == 0


def test_module_shortcut():
    assert build_addresses([make_place()]).num_found == 1

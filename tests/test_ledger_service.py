import pytest

from menorah_live.core.errors import NotFoundError, ValidationError
from menorah_live.models.premium_words import PREMIUM_TIERS

TIER_1 = PREMIUM_TIERS[0].amount
TIER_2 = PREMIUM_TIERS[1].amount


def test_create_assigns_monotonic_ids_and_timestamps(ledger, donation_payload):
    first = ledger.create(donation_payload())
    second = ledger.create(donation_payload(firstName="Yael"))

    assert second.id > first.id
    assert first.created_at == first.updated_at
    assert ledger.get_by_id(first.id) == first


def test_create_floors_amount(ledger, donation_payload):
    donation = ledger.create(donation_payload(amount=3600.99))
    assert donation.amount == 3600


@pytest.mark.parametrize("amount", [0, -100, 0.4])
def test_create_rejects_non_positive_amounts(ledger, donation_payload, amount):
    with pytest.raises(ValidationError):
        ledger.create(donation_payload(amount=amount))
    assert ledger.get_all() == []


def test_create_rejects_non_object_payload(ledger):
    with pytest.raises(ValidationError):
        ledger.create(["Dana", "Levi", 100])


def test_validation_message_names_the_field(ledger, donation_payload):
    with pytest.raises(ValidationError, match="firstName"):
        ledger.create(donation_payload(firstName=""))


def test_get_all_is_newest_first(ledger, donation_payload):
    ids = [ledger.create(donation_payload(amount=100 + i)).id for i in range(3)]
    assert [donation.id for donation in ledger.get_all()] == list(reversed(ids))


def test_get_by_id_missing(ledger):
    with pytest.raises(NotFoundError):
        ledger.get_by_id(404)


def test_update_reference_only_leaves_other_fields(ledger, donation_payload):
    original = ledger.create(donation_payload(amount=TIER_1, premiumWordId="emuna"))

    updated = ledger.update(original.id, {"reference": "for the new roof"})

    assert updated.reference == "for the new roof"
    assert updated.first_name == original.first_name
    assert updated.last_name == original.last_name
    assert updated.amount == original.amount
    assert updated.premium_word_id == "emuna"
    assert updated.created_at == original.created_at
    assert updated.updated_at > original.updated_at


def test_update_clears_optional_fields(ledger, donation_payload):
    original = ledger.create(donation_payload(reference="note", email="dana@example.org"))

    updated = ledger.update(original.id, {"reference": "", "email": None})

    assert updated.reference is None
    assert updated.email is None


def test_update_missing_donation(ledger):
    with pytest.raises(NotFoundError):
        ledger.update(999, {"reference": "x"})


def test_update_rejects_empty_name(ledger, donation_payload):
    original = ledger.create(donation_payload())
    with pytest.raises(ValidationError):
        ledger.update(original.id, {"lastName": "  "})
    assert ledger.get_by_id(original.id).last_name == "Levi"


def test_update_word_resolved_against_new_amount(ledger, donation_payload):
    donation = ledger.create(donation_payload(amount=TIER_2))

    updated = ledger.update(donation.id, {"amount": TIER_1, "premiumWordId": "tikva"})

    assert updated.amount == TIER_1
    assert updated.premium_word_id == "tikva"


def test_update_word_rejected_against_existing_amount(ledger, donation_payload):
    donation = ledger.create(donation_payload(amount=TIER_2))

    updated = ledger.update(donation.id, {"premiumWordId": "tikva"})

    assert updated.premium_word_id is None


def test_amount_change_out_of_tier_drops_word(ledger, donation_payload):
    donation = ledger.create(donation_payload(amount=TIER_1, premiumWordId="ahava"))

    updated = ledger.update(donation.id, {"amount": 5000})

    assert updated.premium_word_id is None
    words = {word.id: word for word in ledger.get_premium_words()}
    assert words["ahava"].available is True


def test_tier_one_word_on_wrong_amount_is_ignored(ledger, donation_payload):
    donation = ledger.create(donation_payload(amount=TIER_2, premiumWordId="emuna"))
    assert donation.premium_word_id is None


def test_delete_returns_removed_donation(ledger, donation_payload):
    donation = ledger.create(donation_payload())

    removed = ledger.delete(donation.id)

    assert removed == donation
    assert ledger.get_all() == []
    with pytest.raises(NotFoundError):
        ledger.delete(donation.id)


def test_delete_frees_premium_word(ledger, donation_payload):
    donation = ledger.create(donation_payload(amount=TIER_1, premiumWordId="shalom"))
    words = {word.id: word for word in ledger.get_premium_words()}
    assert words["shalom"].available is False
    assert words["shalom"].donor_name == "Dana Levi"

    ledger.delete(donation.id)

    words = {word.id: word for word in ledger.get_premium_words()}
    assert words["shalom"].available is True
    assert words["shalom"].donor_name is None


def test_strict_policy_rejects_taken_word(ledger, donation_payload):
    ledger.create(donation_payload(amount=TIER_1, premiumWordId="simcha"))

    with pytest.raises(ValidationError, match="already taken"):
        ledger.create(donation_payload(firstName="Yael", amount=TIER_1, premiumWordId="simcha"))

    assert len(ledger.get_all()) == 1


def test_strict_policy_allows_holder_to_keep_word(ledger, donation_payload):
    donation = ledger.create(donation_payload(amount=TIER_1, premiumWordId="chesed"))
    updated = ledger.update(donation.id, {"premiumWordId": "chesed", "firstName": "Dina"})
    assert updated.premium_word_id == "chesed"


def test_advisory_policy_allows_duplicates(advisory_ledger, donation_payload):
    advisory_ledger.create(donation_payload(amount=TIER_1, premiumWordId="bracha"))
    second = advisory_ledger.create(donation_payload(firstName="Yael", amount=TIER_1, premiumWordId="bracha"))

    assert second.premium_word_id == "bracha"
    words = {word.id: word for word in advisory_ledger.get_premium_words()}
    assert words["bracha"].available is False


def test_stats_reflect_ledger(ledger, config_service, donation_payload):
    config_service.update({
        "goalAmount": 1000,
        "menorahSegments": [
            {"id": "a", "thresholdPercent": 25, "order": 1},
            {"id": "b", "thresholdPercent": 75, "order": 2},
        ],
    })
    ledger.create(donation_payload(amount=300))
    ledger.create(donation_payload(amount=200))

    stats = ledger.get_stats()

    assert stats.total_amount == 500
    assert stats.donation_count == 2
    assert stats.percent_complete == 50
    assert stats.lit_segments == ["a"]


def test_unknown_policy_is_rejected(data_access, config_service):
    from menorah_live.services.ledger_service import LedgerService

    with pytest.raises(ValueError):
        LedgerService(data_access, config_service, premium_word_policy="lenient")

from concurrent.futures import ThreadPoolExecutor
import json
from datetime import date

import pytest

from spending_plan.engine import compute
from spending_plan.settings_store import SettingsStore, SpendingPlanSettings, sanitize_settings

from helpers import TODAY, cat, make_inputs, txn


def test_missing_document_reads_as_empty(tmp_path):
    store = SettingsStore(tmp_path)
    assert store.get('alice') == SpendingPlanSettings()


def test_default_directory_follows_environment(isolated_data_dir):
    store = SettingsStore()
    store.toggle_payee('alice', 'Employer')
    assert (isolated_data_dir / 'settings' / 'alice.json').exists()


def test_toggle_flips_membership(tmp_path):
    store = SettingsStore(tmp_path)
    assert store.toggle_payee('alice', 'Employer').excluded_payees == {'Employer'}
    assert store.toggle_payee('alice', 'Employer').excluded_payees == set()
    store.toggle_income_category('alice', 'inflow')
    store.toggle_expense_category('alice', 'medical')
    settings = store.get('alice')
    assert settings.excluded_income_categories == {'inflow'}
    assert settings.excluded_expense_categories == {'medical'}


def test_set_and_clear_category_bucket(tmp_path):
    store = SettingsStore(tmp_path)
    store.set_category_bucket('alice', 'c1', 'savings')
    store.set_category_bucket('alice', 'c1', 'savings')
    assert store.get('alice').category_mappings == {'c1': 'savings'}
    store.clear_category_bucket('alice', 'c1')
    store.clear_category_bucket('alice', 'c1')
    assert store.get('alice').category_mappings == {}


def test_unknown_bucket_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        SettingsStore(tmp_path).set_category_bucket('alice', 'c1', 'yachts')


def test_writes_merge_into_existing_document(tmp_path):
    store = SettingsStore(tmp_path)
    path = store.get_path('alice')
    path.write_text(json.dumps({'excluded_payees': ['Employer'], 'theme': 'dark'}), encoding='utf-8')
    store.set_category_bucket('alice', 'c1', 'investments')
    stored = json.loads(path.read_text(encoding='utf-8'))
    assert stored['excluded_payees'] == ['Employer']
    assert stored['theme'] == 'dark'
    assert stored['category_mappings'] == {'c1': 'investments'}


def test_clear_operations(tmp_path):
    store = SettingsStore(tmp_path)
    store.toggle_payee('alice', 'A')
    store.toggle_expense_category('alice', 'x')
    store.set_category_bucket('alice', 'c1', 'savings')
    store.clear_payee_exclusions('alice')
    store.clear_expense_category_exclusions('alice')
    store.clear_all_category_buckets('alice')
    assert store.get('alice') == SpendingPlanSettings()


def test_users_are_isolated_and_deletable(tmp_path):
    store = SettingsStore(tmp_path)
    store.toggle_payee('alice', 'A')
    assert store.get('bob') == SpendingPlanSettings()
    assert store.delete('alice') is True
    assert store.delete('alice') is False
    assert store.get('alice') == SpendingPlanSettings()


def test_corrupt_document_reads_as_empty(tmp_path):
    store = SettingsStore(tmp_path)
    store.get_path('alice').parent.mkdir(parents=True, exist_ok=True)
    store.get_path('alice').write_text('{not json', encoding='utf-8')
    assert store.get('alice') == SpendingPlanSettings()


def test_blank_user_id_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        SettingsStore(tmp_path).get('  ')


def test_sanitize_drops_invalid_entries():
    settings, dropped = sanitize_settings({
        'excluded_payees': 'Employer',
        'excluded_income_categories': ['inflow', 7],
        'category_mappings': {'a': 'savings', 'b': 'luxuries'},
    })
    assert dropped == 3
    assert settings.excluded_payees == set()
    assert settings.excluded_income_categories == {'inflow'}
    assert settings.category_mappings == {'a': 'savings'}


def test_engine_reports_dropped_settings():
    report = compute(make_inputs(), {'category_mappings': {'a': 'nope'}}, 0, today=TODAY)
    assert report['diagnostics']['invalid_settings_dropped'] == 1


def test_double_toggle_leaves_report_unchanged(tmp_path):
    inputs = make_inputs(
        categories=[cat('dining', 'Dining Out')],
        transactions=[
            txn('p1', date(2024, 3, 1), 3000.0, payee='Employer', category_id='inflow'),
            txn('p2', date(2024, 3, 2), 250.0, payee='Side Gig', category_id='inflow'),
            txn('d1', date(2024, 3, 3), -75.0, category_id='dining'),
        ],
    )
    store = SettingsStore(tmp_path)
    baseline = compute(inputs, store.get('alice'), 3, today=TODAY)
    toggled = compute(inputs, store.toggle_payee('alice', 'Side Gig'), 3, today=TODAY)
    assert toggled['total_income'] == pytest.approx(3000.0)
    restored = compute(inputs, store.toggle_payee('alice', 'Side Gig'), 3, today=TODAY)
    assert restored == baseline


def test_concurrent_toggles_all_survive(tmp_path):
    directory = tmp_path / 'settings'
    payees = [f'payee-{index}' for index in range(40)]
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda name: SettingsStore(directory).toggle_payee('u1', name), payees))
    assert SettingsStore(directory).get('u1').excluded_payees == set(payees)
    assert [path.name for path in directory.iterdir()] == ['u1.json']


def test_concurrent_writes_to_different_fields_converge(tmp_path):
    store = SettingsStore(tmp_path)
    jobs = [lambda: store.toggle_payee('u1', 'Employer'),
            lambda: store.toggle_expense_category('u1', 'medical'),
            lambda: store.set_category_bucket('u1', 'rent', 'fixed_costs')] * 5
    with ThreadPoolExecutor(max_workers=6) as pool:
        for future in [pool.submit(job) for job in jobs]:
            future.result()
    settings = store.get('u1')
    assert settings.excluded_payees == {'Employer'}
    assert settings.excluded_expense_categories == {'medical'}
    assert settings.category_mappings == {'rent': 'fixed_costs'}

"""
Unit tests for the data-driven prediction service.
Covers segmentation-adjusted income, the disabled state and single-flight loading.
"""
import asyncio
import threading

import pytest

from app.dataset.schemas import AvailableDataset, UnavailableDataset
from app.prediction import service as prediction_module
from app.prediction.service import PredictionService
from tests.conftest import DATASET_HEADER, make_service, run


def test_predicted_income_uses_segmented_occupancy(prediction_service):
    # 3042 / 30.42 = 100 per night; 3 listings in the band, 2 booked
    prediction = run(prediction_service.predict_net_monthly_income(3042, 1000, 1))

    assert prediction.used_segmentation is True
    assert prediction.booking_rate == pytest.approx(2 / 3)
    assert prediction.occupancy_rate == pytest.approx(200 / 3)
    assert prediction.adjusted_monthly_rent == 2028.0
    assert prediction.net_monthly == 1336.27
    assert prediction.booked_days_per_month == 20.28
    assert prediction.global_aor == 0.5
    assert prediction.filtered_count == 3
    assert prediction.total_count == 4


def test_predict_return_over_years(prediction_service):
    predictions = run(prediction_service.predict_return_over_years(200000, 3042, 1000, 3))

    assert [p.year for p in predictions] == [1, 2, 3]
    first = predictions[0]
    assert first.annual_net == 16035.24
    assert first.roi == 8.02
    # Commission tiers still apply to the adjusted rent
    assert predictions[0].net_monthly < predictions[1].net_monthly < predictions[2].net_monthly


def test_empty_band_falls_back_to_global_rate(prediction_service):
    segmentation = run(prediction_service.calculate_segmented_occupancy_rate(30420))

    assert segmentation.used_segmentation is False
    assert segmentation.filtered_count == 0
    assert segmentation.total_count == 4
    assert segmentation.segmented_aor == 0.5
    assert segmentation.global_aor == 0.5


def test_global_aor_independent_of_segmentation(prediction_service):
    for rent in (100, 2800, 3042, 6000, 30420):
        segmentation = run(prediction_service.calculate_segmented_occupancy_rate(rent))
        assert segmentation.global_aor == 0.5


def test_unavailable_dataset_disables_predictions():
    service = make_service(None)

    assert run(service.predict_return_over_years(200000, 1500, 1000, 3)) is None
    assert run(service.predict_net_monthly_income(1500, 1000, 1)) is None
    assert run(service.calculate_segmented_occupancy_rate(1500)) is None
    assert run(service.get_dataset_stats()) is None
    assert isinstance(service.state, UnavailableDataset)


def test_header_only_dataset_is_available_but_uses_global_rate(tmp_path):
    path = tmp_path / "dataset.csv"
    path.write_text(DATASET_HEADER, encoding="utf-8")
    service = make_service(path)

    stats = run(service.get_dataset_stats())
    predictions = run(service.predict_return_over_years(200000, 1500, 1200, 3))

    assert stats.total_properties == 0
    assert isinstance(service.state, AvailableDataset)
    assert len(predictions) == 3
    assert all(p.used_segmentation is False for p in predictions)
    assert all(p.net_monthly == -100.0 for p in predictions)


def test_loader_failure_degrades_to_unavailable():
    async def broken():
        raise RuntimeError("disk on fire")

    service = PredictionService(resolve_path=broken)

    assert run(service.get_dataset_stats()) is None
    assert service.state.reason == "disk on fire"


def test_csv_is_parsed_off_the_event_loop_thread(dataset_file, monkeypatch):
    parse_threads = []
    original = prediction_module.load_dataset

    def tracking_load(path):
        parse_threads.append(threading.get_ident())
        return original(path)

    monkeypatch.setattr(prediction_module, "load_dataset", tracking_load)
    service = make_service(dataset_file)

    stats = run(service.get_dataset_stats())

    assert stats.total_properties == 4
    assert parse_threads and parse_threads[0] != threading.get_ident()


def test_concurrent_first_calls_share_one_load(dataset_file):
    calls = {"count": 0}

    async def slow_resolve():
        calls["count"] += 1
        await asyncio.sleep(0.05)
        return dataset_file

    service = PredictionService(resolve_path=slow_resolve)

    async def burst():
        return await asyncio.gather(*(service.get_dataset_stats() for _ in range(10)))

    results = run(burst())

    assert calls["count"] == 1
    assert service.load_count == 1
    assert all(stats == results[0] for stats in results)
    assert results[0].total_properties == 4


def test_reset_cache_forces_reload(prediction_service, dataset_file):
    run(prediction_service.get_dataset_stats())
    dataset_file.write_text(DATASET_HEADER + "2024-02-01,P9,50,2,8,100,1\n", encoding="utf-8")

    # Cached: the file change is not seen
    assert run(prediction_service.get_dataset_stats()).total_properties == 4

    prediction_service.reset_cache()
    assert prediction_service.state is None
    assert run(prediction_service.get_dataset_stats()).total_properties == 1
    assert prediction_service.load_count == 2


def test_initialize_dataset_never_raises(prediction_service, monkeypatch):
    async def boom():
        raise RuntimeError("unexpected")

    monkeypatch.setattr(prediction_service, "get_dataset_stats", boom)

    run(prediction_service.initialize_dataset())


def test_initialize_dataset_loads_once(prediction_service):
    run(prediction_service.initialize_dataset())
    run(prediction_service.predict_return_over_years(200000, 3042, 1000, 3))

    assert prediction_service.load_count == 1


def test_reset_during_load_keeps_in_flight_result(dataset_file):
    started = asyncio.Event()

    async def slow_resolve():
        started.set()
        await asyncio.sleep(0.05)
        return dataset_file

    service = PredictionService(resolve_path=slow_resolve)

    async def scenario():
        pending = asyncio.create_task(service.get_dataset())
        await started.wait()
        service.reset_cache()
        return await pending

    state = run(scenario())

    assert isinstance(state, AvailableDataset)
    assert service.state is state
    assert service.load_count == 1

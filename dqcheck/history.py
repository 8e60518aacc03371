"""
Historical trend analysis across runs.

Each run's headline metrics are appended to a bounded per-source history.
Before storing the current run, the engine compares it against the stored
runs to report trends, flag anomalous metrics and forecast the next score.
"""

import hashlib
import json
import logging
import os
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlparse

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .models import (
    HistoricalAnalysis,
    HistoricalMetric,
    MetricAnomaly,
    MetricStats,
    MetricTrend,
    Prediction,
    QualityScore,
    ValidationResult,
)
from .values import linear_fit

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 100
MIN_HISTORY_FOR_TRENDS = 3
ANOMALY_Z_SCORE = 2.5
STABLE_CHANGE_PERCENT = 1.0
MOVING_AVERAGE_WINDOW = 3
MAX_SOURCE_ID_LENGTH = 100
HIGH_VARIABILITY_STD = 10.0

# (attribute, display name, whether higher is better; None when neutral)
TRACKED_METRICS = (
    ("quality_score", "Quality Score", True),
    ("total_issues", "Total Issues", False),
    ("total_rows", "Total Rows", None),
)


def sanitize_source_id(text: str) -> str:
    cleaned = re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")
    return cleaned[:MAX_SOURCE_ID_LENGTH]


def _short_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]


def generate_data_source_id(identifier: Optional[str] = None, url: Optional[str] = None,
                            content: Optional[str] = None) -> str:
    """
    Derive a stable identifier for a data source.

    Preference order: an explicit identifier, then the URL host and path,
    then a hash of the first 1000 characters of inline content. Without
    any of these the id is unique to the moment it was generated.
    """
    if identifier:
        sanitized = sanitize_source_id(identifier)
        return sanitized or f"id_{_short_hash(identifier)}"

    if url:
        parsed = urlparse(url)
        sanitized = sanitize_source_id(f"{parsed.netloc}{parsed.path}")
        if sanitized:
            return sanitized

    if content:
        return f"inline_{_short_hash(content[:1000])}"

    return f"unknown_{datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S%f')}"


class HistoryStore:
    """Persistence contract for per-source run histories."""

    def load_history(self, source_id: str, limit: int = 30) -> List[HistoricalMetric]:
        raise NotImplementedError

    def append_history(self, source_id: str, metric: HistoricalMetric) -> None:
        raise NotImplementedError


class InMemoryHistoryStore(HistoryStore):
    """History kept in process memory, mostly for tests and one-off runs."""

    def __init__(self, max_entries: int = MAX_HISTORY_ENTRIES):
        self.max_entries = max_entries
        self._histories: Dict[str, List[HistoricalMetric]] = {}

    def load_history(self, source_id: str, limit: int = 30) -> List[HistoricalMetric]:
        return list(self._histories.get(source_id, [])[-limit:])

    def append_history(self, source_id: str, metric: HistoricalMetric) -> None:
        history = self._histories.setdefault(source_id, [])
        history.append(metric)
        del history[:-self.max_entries]


class JsonFileHistoryStore(HistoryStore):
    """
    History stored as one JSON file per data source.

    Files are rewritten atomically through a temporary file, and each
    history keeps only its most recent ``max_entries`` runs.
    """

    def __init__(self, directory: Path, max_entries: int = MAX_HISTORY_ENTRIES):
        self.directory = Path(directory)
        self.max_entries = max_entries

    def _path(self, source_id: str) -> Path:
        return self.directory / f"{sanitize_source_id(source_id) or 'unknown'}.json"

    def _read(self, source_id: str) -> List[HistoricalMetric]:
        path = self._path(source_id)
        if not path.exists():
            return []
        with open(path, "r", encoding="utf-8") as f:
            entries = json.load(f)
        return [HistoricalMetric.from_dict(entry) for entry in entries]

    def load_history(self, source_id: str, limit: int = 30) -> List[HistoricalMetric]:
        return self._read(source_id)[-limit:]

    def append_history(self, source_id: str, metric: HistoricalMetric) -> None:
        history = self._read(source_id)
        history.append(metric)
        history = history[-self.max_entries:]

        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(source_id)
        temp_path = path.with_suffix(".json.tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump([entry.to_dict() for entry in history], f, indent=2)
        os.replace(temp_path, path)
        logger.debug(f"Stored run {metric.run_id} for '{source_id}' ({len(history)} runs kept)")


def extract_metrics(validation: ValidationResult, score: QualityScore,
                    timestamp: Optional[datetime] = None) -> HistoricalMetric:
    """Headline metrics of a run, ready to be stored."""
    breakdown = validation.issue_breakdown
    moment = timestamp or datetime.now(timezone.utc)
    return HistoricalMetric(
        timestamp=moment.isoformat(),
        quality_score=float(score.overall),
        grade=score.grade,
        total_rows=validation.total_rows,
        total_issues=breakdown.total,
        issue_breakdown={
            "type_errors": breakdown.type_errors,
            "missing_values": breakdown.missing_values,
            "constraint_violations": breakdown.constraint_violations,
            "duplicates": breakdown.duplicates,
            "outliers": breakdown.outliers,
        },
        data_quality={
            "completeness": score.completeness,
            "validity": score.validity,
            "uniqueness": score.uniqueness,
            "consistency": score.consistency,
        },
        run_id=uuid.uuid4().hex,
    )


def calculate_stats(values: List[float]) -> MetricStats:
    if not values:
        return MetricStats(mean=0.0, std_dev=0.0, min=0.0, max=0.0, median=0.0)
    array = np.asarray(values, dtype=float)
    return MetricStats(
        mean=round(float(array.mean()), 2),
        std_dev=round(float(array.std()), 2),
        min=float(array.min()),
        max=float(array.max()),
        median=round(float(np.median(array)), 2),
    )


def moving_average(values: List[float], window: int = MOVING_AVERAGE_WINDOW) -> List[float]:
    if len(values) < window:
        return []
    averages = sliding_window_view(np.asarray(values, dtype=float), window).mean(axis=1)
    return [round(float(average), 2) for average in averages]


def determine_trend(metric: str, values: List[float], higher_is_better: Optional[bool]) -> MetricTrend:
    """
    Direction of a metric over its history, by least squares.

    A change below 1% over the series is stable. For metrics where lower is
    better a rising line is a decline; neutral metrics report plain
    increasing or decreasing.
    """
    slope, _, r_squared = linear_fit(values)
    average = float(np.mean(values))
    change_percent = slope * len(values) / average * 100 if average else 0.0

    if abs(change_percent) < STABLE_CHANGE_PERCENT:
        direction = "stable"
    elif higher_is_better is None:
        direction = "increasing" if slope > 0 else "decreasing"
    elif (slope > 0) == higher_is_better:
        direction = "improving"
    else:
        direction = "declining"

    return MetricTrend(
        metric=metric,
        direction=direction,
        change_percent=round(change_percent, 2),
        slope=round(slope, 4),
        confidence=round(max(0.0, r_squared), 2),
        stats=calculate_stats(values),
    )


def calculate_trends(history: List[HistoricalMetric]) -> Dict[str, MetricTrend]:
    if len(history) < MIN_HISTORY_FOR_TRENDS:
        return {}
    trends = {}
    for attribute, _, higher_is_better in TRACKED_METRICS:
        values = [float(getattr(entry, attribute)) for entry in history]
        trends[attribute] = determine_trend(attribute, values, higher_is_better)
    scores = [float(entry.quality_score) for entry in history]
    trends["quality_score"].moving_average = moving_average(scores)
    return trends


def _anomaly_message(name: str, current: float, expected: float, impact: str) -> str:
    direction = "higher" if current > expected else "lower"
    impact_text = {
        "positive": "This is a positive deviation.",
        "negative": "This may indicate a data quality issue.",
    }.get(impact, "Monitor this metric for consistency.")
    return (f"{name} is significantly {direction} than expected "
            f"({current:g} vs {expected:.2f}). {impact_text}")


def detect_anomalies(history: List[HistoricalMetric], current: HistoricalMetric) -> List[MetricAnomaly]:
    """Metrics of ``current`` whose z-score against history reaches 2.5."""
    anomalies: List[MetricAnomaly] = []
    if len(history) < MIN_HISTORY_FOR_TRENDS:
        return anomalies

    for attribute, name, higher_is_better in TRACKED_METRICS:
        values = [float(getattr(entry, attribute)) for entry in history]
        array = np.asarray(values, dtype=float)
        average = float(array.mean())
        std_dev = float(array.std()) if np.ptp(array) else 0.0
        value = float(getattr(current, attribute))
        z_score = (value - average) / std_dev if std_dev else 0.0

        if abs(z_score) < ANOMALY_Z_SCORE:
            continue

        if abs(z_score) >= 4:
            severity = "critical"
        elif abs(z_score) >= 3:
            severity = "high"
        else:
            severity = "medium"

        if higher_is_better is None:
            impact = "neutral"
        elif (z_score > 0) == higher_is_better:
            impact = "positive"
        else:
            impact = "negative"

        anomalies.append(MetricAnomaly(
            metric=attribute,
            value=value,
            expected=round(average, 2),
            z_score=round(z_score, 2),
            severity=severity,
            impact=impact,
            message=_anomaly_message(name, value, average, impact),
        ))
    return anomalies


def predict_next_run(history: List[HistoricalMetric]) -> Optional[Prediction]:
    """Forecast the next quality score as the historical mean plus one slope step."""
    if len(history) < MIN_HISTORY_FOR_TRENDS:
        return None
    scores = [float(entry.quality_score) for entry in history]
    trend = determine_trend("quality_score", scores, True)
    predicted = max(0.0, min(100.0, float(np.mean(scores)) + trend.slope))
    return Prediction(
        quality_score=round(predicted, 1),
        confidence=trend.confidence,
        based_on_runs=len(history),
        trend=trend.direction,
    )


def trend_recommendations(trends: Dict[str, MetricTrend], anomalies: List[MetricAnomaly]) -> List[str]:
    if not trends:
        return ["Run more validations to enable trend analysis and predictions."]

    recommendations = []
    score_trend = trends.get("quality_score")
    if score_trend is not None and score_trend.direction == "declining":
        recommendations.append(f"Quality score is declining ({score_trend.change_percent}% change). "
                               "Review recent data sources for issues.")
    elif score_trend is not None and score_trend.direction == "improving":
        recommendations.append(f"Quality score is improving ({score_trend.change_percent}% change). "
                               "Data quality practices are working.")

    for anomaly in anomalies:
        if anomaly.impact == "negative":
            recommendations.append(anomaly.message)

    if score_trend is not None and score_trend.stats.std_dev > HIGH_VARIABILITY_STD:
        recommendations.append("High variability in quality scores. Consider standardizing data sources.")

    return recommendations


class HistoricalAnalyzer:
    """
    Compares a run against its stored history and records it.

    Example:
        >>> analyzer = HistoricalAnalyzer(JsonFileHistoryStore(Path(".dq_history")))
        >>> analysis = analyzer.analyze("sales_csv", extract_metrics(validation, score))
        >>> for anomaly in analysis.anomalies:
        ...     print(anomaly.message)
    """

    def __init__(self, store: Optional[HistoryStore] = None, history_limit: int = 30):
        self.store = store or InMemoryHistoryStore()
        self.history_limit = history_limit

    def analyze(self, source_id: str, current: HistoricalMetric) -> HistoricalAnalysis:
        history = self.store.load_history(source_id, self.history_limit)
        logger.info(f"Analyzing {len(history)} previous runs for '{source_id}'")

        trends = calculate_trends(history)
        anomalies = detect_anomalies(history, current)
        prediction = predict_next_run(history)

        self.store.append_history(source_id, current)

        return HistoricalAnalysis(
            data_source_id=source_id,
            history_size=len(history),
            trends=trends,
            anomalies=anomalies,
            prediction=prediction,
            recommendations=trend_recommendations(trends, anomalies),
            has_enough_history=len(history) >= MIN_HISTORY_FOR_TRENDS,
        )

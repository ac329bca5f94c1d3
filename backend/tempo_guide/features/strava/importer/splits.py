"""
Splits and laps extraction.

Maps the per-kilometer splits (splits_metric) and laps of a detailed
activity response to strava_activity_splits / strava_activity_laps rows.
Entries without distance or elapsed time are dropped.
"""


def map_splits(user_id: str, strava_activity_id: int, detail: dict) -> list[dict]:
    """
    Map splits_metric of an activity detail to split rows.

    Split numbers come from Strava's "split" field, falling back to the
    position in the list.
    """
    rows = []
    for index, split in enumerate(detail.get("splits_metric") or [], start=1):
        if not split.get("distance") or split.get("elapsed_time") is None:
            continue
        rows.append({
            "user_id": user_id,
            "strava_activity_id": strava_activity_id,
            "split_number": split.get("split") or index,
            "distance_m": split["distance"],
            "moving_time_s": split.get("moving_time"),
            "elapsed_time_s": split["elapsed_time"],
            "elevation_diff_m": split.get("elevation_difference"),
            "average_speed_mps": split.get("average_speed"),
            "average_grade_adjusted_speed_mps": split.get("average_grade_adjusted_speed"),
            "average_heartrate": split.get("average_heartrate"),
            "pace_zone": split.get("pace_zone"),
        })
    return rows


def map_laps(user_id: str, strava_activity_id: int, detail: dict) -> list[dict]:
    """Map laps of an activity detail to lap rows, numbered from 1."""
    rows = []
    for index, lap in enumerate(detail.get("laps") or [], start=1):
        if not lap.get("distance") or lap.get("elapsed_time") is None:
            continue
        rows.append({
            "user_id": user_id,
            "strava_activity_id": strava_activity_id,
            "lap_number": lap.get("lap_index") or index,
            "name": lap.get("name"),
            "distance_m": lap["distance"],
            "moving_time_s": lap.get("moving_time"),
            "elapsed_time_s": lap["elapsed_time"],
            "average_speed_mps": lap.get("average_speed"),
            "max_speed_mps": lap.get("max_speed"),
            "average_heartrate": lap.get("average_heartrate"),
            "max_heartrate": lap.get("max_heartrate"),
            "average_cadence": lap.get("average_cadence"),
            "average_watts": lap.get("average_watts"),
        })
    return rows

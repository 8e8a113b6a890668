"""
Train Directory Module

Static train number -> train name reference data, held by an explicit
directory object built at startup.
"""

from typing import Dict, List, Optional, Tuple


UNKNOWN_TRAIN = "Unknown Train"

DEFAULT_TRAINS = {
    "12301": "Mumbai Express",
    "12010": "Rajdhani Express",
    "22801": "Coastal Superfast",
    "15645": "Heritage Mail",
    "11022": "Intercity Local",
}


class TrainDirectory:
    """Lookup of train names by train number, in listing order"""

    def __init__(self, trains: Optional[Dict[str, str]] = None):
        self._trains: Dict[str, str] = dict(DEFAULT_TRAINS if trains is None else trains)

    def name_for(self, train_no: str) -> str:
        """Train name, or UNKNOWN_TRAIN for numbers not in the directory"""
        return self._trains.get((train_no or "").strip(), UNKNOWN_TRAIN)

    def is_known(self, train_no: str) -> bool:
        return (train_no or "").strip() in self._trains

    def list_trains(self) -> List[Tuple[str, str]]:
        return list(self._trains.items())

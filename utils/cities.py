"""Known Peruvian cities offered as trip origins/destinations, with coordinates."""
from typing import Optional, Tuple

PERU_CITIES = [
    {"name": "Lima", "lat": -12.0464, "lng": -77.0428},
    {"name": "Arequipa", "lat": -16.4090, "lng": -71.5375},
    {"name": "Cusco", "lat": -13.5319, "lng": -71.9675},
    {"name": "Trujillo", "lat": -8.1116, "lng": -79.0288},
    {"name": "Chiclayo", "lat": -6.7714, "lng": -79.8409},
    {"name": "Piura", "lat": -5.1945, "lng": -80.6328},
    {"name": "Iquitos", "lat": -3.7437, "lng": -73.2516},
    {"name": "Huancayo", "lat": -12.0651, "lng": -75.2049},
    {"name": "Tacna", "lat": -18.0066, "lng": -70.2463},
    {"name": "Puno", "lat": -15.8402, "lng": -70.0219},
    {"name": "Ica", "lat": -14.0678, "lng": -75.7286},
    {"name": "Cajamarca", "lat": -7.1638, "lng": -78.5003},
    {"name": "Ayacucho", "lat": -13.1588, "lng": -74.2239},
    {"name": "Huaraz", "lat": -9.5278, "lng": -77.5278},
    {"name": "Chimbote", "lat": -9.0745, "lng": -78.5936},
    {"name": "Pucallpa", "lat": -8.3791, "lng": -74.5539},
    {"name": "Tumbes", "lat": -3.5669, "lng": -80.4515},
    {"name": "Moquegua", "lat": -17.1956, "lng": -70.9353},
    {"name": "Nazca", "lat": -14.8309, "lng": -74.9389},
]


def find_city_coords(name: str) -> Optional[Tuple[float, float]]:
    wanted = name.strip().lower()
    for city in PERU_CITIES:
        if city["name"].lower() == wanted:
            return city["lat"], city["lng"]
    return None

# kmh_project_root/config/navigation.py
# Role-based page table for the multipage app.

from typing import Dict, List, Tuple

from pydantic import BaseModel


class NavItem(BaseModel):
    name: str
    page: str
    icon: str
    roles: Tuple[str, ...]


NAVIGATION: List[NavItem] = [
    NavItem(name="Dashboard", page="pages/01_Dashboard.py", icon="🏠", roles=("government_official", "doctor")),
    NavItem(name="Health Map", page="pages/02_Health_Map.py", icon="🗺️", roles=("government_official", "doctor")),
    NavItem(name="Patients", page="pages/03_Patients.py", icon="👥", roles=("doctor",)),
    NavItem(name="Alerts", page="pages/04_Alerts.py", icon="⚠️", roles=("government_official", "doctor")),
    NavItem(name="Settings", page="pages/05_Settings.py", icon="⚙️", roles=("government_official", "doctor", "migrant")),
]

NAV_BY_NAME: Dict[str, NavItem] = {item.name: item for item in NAVIGATION}

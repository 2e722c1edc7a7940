# kmh_project_root/generate_data.py
# Generates the demo dataset served by the local CSV record store.
#
# Usage: python generate_data.py [--seed 42] [--patients 150]
# Dates are generated relative to now so every alert rule fires on some rows.

import argparse
import random
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

import numpy as np
import pandas as pd

OUTPUT_DIR = Path(__file__).resolve().parent / "data_sources"

# --- Reference Data ---
DISTRICTS = {
    # name: (region, overall, water, sanitation, crowding, lat, lon)
    "Thiruvananthapuram": ("South", 6.8, 6.0, 6.5, 8.0, 8.5241, 76.9366),
    "Kollam": ("South", 5.2, 5.5, 4.8, 5.0, 8.8932, 76.6141),
    "Pathanamthitta": ("South", 3.9, 4.0, 3.5, 3.2, 9.2648, 76.787),
    "Alappuzha": ("South", 6.4, 7.8, 6.0, 5.5, 9.4981, 76.3388),
    "Kottayam": ("Central", 4.1, 4.5, 3.8, 4.0, 9.5916, 76.5222),
    "Idukki": ("Central", 3.2, 3.0, 3.5, 2.5, 9.9151, 76.9739),
    "Ernakulam": ("Central", 7.6, 6.5, 7.0, 9.2, 9.9312, 76.2673),
    "Thrissur": ("Central", 5.8, 5.0, 5.5, 6.5, 10.5276, 76.2144),
    "Palakkad": ("North", 4.7, 4.2, 5.0, 4.5, 10.7867, 76.6548),
    "Malappuram": ("North", 6.1, 5.8, 6.2, 6.8, 11.051, 76.0711),
    "Kozhikode": ("North", 6.9, 6.2, 6.0, 7.8, 11.2588, 75.7804),
    "Wayanad": ("North", 3.5, 3.8, 4.0, 2.8, 11.6854, 76.132),
    "Kannur": ("North", 4.4, 4.0, 4.2, 4.8, 11.8745, 75.3704),
    "Kasaragod": ("North", 4.9, 5.0, 5.2, 4.0, 12.4996, 75.004),
}
DISEASES = ["Dengue", "Leptospirosis", "Malaria", "Tuberculosis", "Hepatitis A", "Typhoid", "Cholera", "Scrub Typhus"]
DISEASE_WEIGHTS = [0.25, 0.15, 0.12, 0.14, 0.10, 0.10, 0.06, 0.08]
SEVERITIES = ["Mild", "Moderate", "Severe", "Critical"]
SEVERITY_WEIGHTS = [0.45, 0.30, 0.17, 0.08]
OUTCOMES = ["Recovered", "Under Treatment", "Deceased", "Transferred"]
OUTCOME_WEIGHTS = [0.55, 0.35, 0.03, 0.07]
FIRST_NAMES = ["Ravi", "Anil", "Suresh", "Rahul", "Deepak", "Priya", "Anjali", "Lakshmi", "Meena", "Fatima",
               "Manoj", "Sanjay", "Arjun", "Kavya", "Divya", "Rajesh", "Bimal", "Sunita", "Imran", "Gopal"]
LAST_NAMES = ["Kumar", "Nair", "Das", "Singh", "Yadav", "Menon", "Pillai", "Sheikh", "Mondal", "Paswan"]
SYMPTOMS = ["fever", "headache", "body ache", "vomiting", "cough", "rash", "jaundice", "fatigue", "chills"]


def iso(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat()


def build_districts() -> pd.DataFrame:
    rows = []
    for name, (region, overall, water, sanitation, crowding, lat, lon) in DISTRICTS.items():
        rows.append({"id": str(uuid.uuid4()), "district_name": name, "region": region,
                     "overall_risk": overall, "water_risk": water, "sanitation_risk": sanitation,
                     "crowding_risk": crowding, "lat": lat, "lon": lon})
    return pd.DataFrame(rows)


def build_hospitals() -> pd.DataFrame:
    rows = []
    for i, name in enumerate(DISTRICTS, start=1):
        for kind, beds in (("Government Medical College", 800), ("District Hospital", 300)):
            hid = f"H{i:02d}{'M' if kind.startswith('Gov') else 'D'}"
            rows.append({"id": str(uuid.uuid4()), "hospital_id": hid, "name": f"{name} {kind}",
                         "district": name, "type": kind, "bed_capacity": beds + random.randint(-50, 50)})
    return pd.DataFrame(rows)


def build_profiles() -> pd.DataFrame:
    return pd.DataFrame([
        {"id": str(uuid.uuid4()), "email": "official@kerala.gov.in", "full_name": "State Health Officer",
         "role": "government_official", "district": "", "hospital_id": ""},
        {"id": str(uuid.uuid4()), "email": "doctor.ernakulam@kerala.gov.in", "full_name": "Dr. Meera Menon",
         "role": "doctor", "district": "Ernakulam", "hospital_id": "H07M"},
        {"id": str(uuid.uuid4()), "email": "doctor.kozhikode@kerala.gov.in", "full_name": "Dr. Faisal Rahman",
         "role": "doctor", "district": "Kozhikode", "hospital_id": "H11M"},
        {"id": str(uuid.uuid4()), "email": "worker@example.com", "full_name": "Ravi Kumar",
         "role": "migrant", "district": "Ernakulam", "hospital_id": ""},
    ])


def build_patients(hospitals: pd.DataFrame, n_patients: int, now: datetime) -> pd.DataFrame:
    district_names = list(DISTRICTS)
    rows = []
    base_ms = int(now.timestamp() * 1000)
    for i in range(n_patients):
        district = random.choice(district_names)
        migrant = random.random() < 0.6
        # Spread checkups across 0-500 days so both checkup rules and the TB rule trigger.
        roll = random.random()
        if roll < 0.08:
            last_checkup = ""
        else:
            last_checkup = iso(now - timedelta(days=random.randint(0, 500), hours=random.randint(0, 23)))
        created = now - timedelta(days=random.randint(0, 400))
        rows.append({
            "id": str(uuid.uuid4()),
            "patient_id": f"KL{str(base_ms - i * 7919)[-8:]}",
            "name": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
            "age": random.randint(18, 65) if migrant else random.randint(1, 90),
            "gender": random.choices(["Male", "Female", "Other"], weights=[0.62, 0.36, 0.02])[0],
            "migrant": migrant,
            "hospital_id": random.choice(hospitals.loc[hospitals["district"] == district, "hospital_id"].tolist()),
            "district": district,
            "contact_number": f"9{random.randint(100000000, 999999999)}",
            "address": f"Ward {random.randint(1, 40)}, {district}",
            "last_checkup": last_checkup,
            "created_at": iso(created),
            "updated_at": iso(created),
            "created_by": "",
        })
    return pd.DataFrame(rows)


def build_disease_cases(patients: pd.DataFrame, now: datetime) -> pd.DataFrame:
    rows = []
    hotspots = ["Ernakulam", "Thiruvananthapuram", "Kozhikode"]
    for _, patient in patients.iterrows():
        for _ in range(np.random.poisson(1.3)):
            # Hotspot districts get more admissions in the last week.
            recent = patient["district"] in hotspots and random.random() < 0.5
            admitted = now - timedelta(days=random.randint(0, 6) if recent else random.randint(0, 90),
                                       hours=random.randint(0, 23))
            outcome = random.choices(OUTCOMES, weights=OUTCOME_WEIGHTS)[0]
            rows.append({
                "id": str(uuid.uuid4()),
                "case_id": f"CASE{len(rows) + 1:05d}",
                "patient_id": patient["id"],
                "hospital_id": patient["hospital_id"],
                "district": patient["district"],
                "disease_name": random.choices(DISEASES, weights=DISEASE_WEIGHTS)[0],
                "disease_category": "Communicable",
                "admission_date": iso(admitted),
                "is_migrant_patient": patient["migrant"],
                "severity": random.choices(SEVERITIES, weights=SEVERITY_WEIGHTS)[0],
                "outcome": outcome,
                "symptoms": "; ".join(random.sample(SYMPTOMS, k=random.randint(1, 3))),
                "treatment_plan": "",
                "created_at": iso(admitted),
                "updated_at": iso(admitted),
            })
    return pd.DataFrame(rows)


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate the Kerala migrant health demo dataset.")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--patients", type=int, default=150)
    parser.add_argument("--output-dir", type=Path, default=OUTPUT_DIR)
    args = parser.parse_args()

    random.seed(args.seed)
    np.random.seed(args.seed)
    now = datetime.now(timezone.utc)
    args.output_dir.mkdir(parents=True, exist_ok=True)

    print("Starting data generation...")
    districts = build_districts()
    hospitals = build_hospitals()
    profiles = build_profiles()
    patients = build_patients(hospitals, args.patients, now)
    cases = build_disease_cases(patients, now)

    for name, df in (("districts", districts), ("hospitals", hospitals), ("profiles", profiles),
                     ("patients", patients), ("disease_cases", cases)):
        path = args.output_dir / f"{name}.csv"
        df.to_csv(path, index=False)
        print(f"Wrote {len(df)} rows to {path}")
    print("Data generation complete.")


if __name__ == "__main__":
    main()

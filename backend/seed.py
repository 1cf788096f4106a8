# seed.py — Create the admin account and demo organizations/problems
#
#   python seed.py               # admin + sample data, skipping rows that exist
#   python seed.py --admin-only
#   python seed.py --reset       # drop and recreate every table first
import argparse
import asyncio
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

import config
from auth import TokenService
from database import Database
from logging_system import configure_logging
from models import (
    User, Organization, ProblemStatement, UserRole, Industry, Track,
    Difficulty, ProblemStatus, category_matches_track, utcnow,
)
from repositories.organization_repository import OrganizationRepository
from repositories.user_repository import UserRepository

logger = logging.getLogger("devthon.seed")

SAMPLE_ORG_PASSWORD = "Organization@123"

SAMPLE_ORGANIZATIONS: List[Dict[str, Any]] = [
    {
        "name": "TechCorp Global",
        "description": "Leading technology solutions provider",
        "website": "https://techcorp.example.com",
        "industry": Industry.TECHNOLOGY,
        "contact_person": "John Smith",
        "contact_email": "john@techcorp.example.com",
    },
    {
        "name": "HealthFirst Labs",
        "description": "Innovative healthcare research laboratory",
        "website": "https://healthfirst.example.com",
        "industry": Industry.HEALTHCARE,
        "contact_person": "Dr. Sarah Johnson",
        "contact_email": "sarah@healthfirst.example.com",
    },
    {
        "name": "GreenEnergy Solutions",
        "description": "Sustainable energy technology startup",
        "website": "https://greenenergy.example.com",
        "industry": Industry.ENERGY,
        "contact_person": "Michael Green",
        "contact_email": "michael@greenenergy.example.com",
    },
]

# "org" indexes SAMPLE_ORGANIZATIONS
SAMPLE_PROBLEMS: List[Dict[str, Any]] = [
    {
        "org": 0,
        "title": "AI-Powered Customer Support Automation",
        "description": (
            "Develop an intelligent chatbot system that can handle complex customer queries, "
            "learn from interactions, and escalate to human agents when necessary. The system "
            "should support multiple languages and integrate with existing CRM platforms."
        ),
        "track": Track.SOFTWARE,
        "category": "AI, Generative AI, Agentic AI & Intelligent Automation",
        "industry": Industry.TECHNOLOGY,
        "expected_outcome": "A prototype resolving 80% of queries with sentiment analysis.",
        "tech_stack": ["Python", "TensorFlow", "React", "Node.js"],
        "difficulty": Difficulty.HARD,
        "datasets": "Sample customer interaction logs will be provided",
        "api_links": "CRM API documentation",
        "reference_links": ["https://example.com/chatbot-research"],
        "mentors_provided": True,
        "status": ProblemStatus.APPROVED,
        "featured": True,
    },
    {
        "org": 1,
        "title": "Wearable Health Monitoring Device",
        "description": (
            "Design and prototype a non-invasive wearable device that continuously monitors "
            "heart rate, blood oxygen and body temperature, alerting healthcare providers in "
            "real time when anomalies are detected."
        ),
        "track": Track.HARDWARE,
        "category": "Healthcare & Assistive Hardware",
        "industry": Industry.HEALTHCARE,
        "expected_outcome": "Working prototype with a mobile app and a cloud dashboard for providers.",
        "tech_stack": ["Arduino", "ESP32", "React Native", "AWS IoT"],
        "difficulty": Difficulty.HARD,
        "nda_required": True,
        "mentors_provided": True,
        "status": ProblemStatus.APPROVED,
        "featured": True,
    },
    {
        "org": 2,
        "title": "Smart Grid Energy Optimization",
        "description": (
            "Create a machine learning model that predicts energy consumption patterns and "
            "optimizes distribution across a smart grid network, reducing waste and integrating "
            "renewable sources efficiently."
        ),
        "track": Track.SOFTWARE,
        "category": "ClimateTech, AgriTech & Sustainability",
        "industry": Industry.ENERGY,
        "expected_outcome": "ML model with a dashboard comparing predicted and actual consumption.",
        "tech_stack": ["Python", "scikit-learn", "D3.js"],
        "difficulty": Difficulty.MEDIUM,
        "datasets": "Historical energy consumption data for 10,000 households",
        "mentors_provided": True,
        "status": ProblemStatus.APPROVED,
    },
    {
        "org": 0,
        "title": "Blockchain-Based Supply Chain Tracking",
        "description": (
            "Develop a decentralized application for tracking products through the entire "
            "supply chain, providing transparency, preventing counterfeiting and letting "
            "consumers verify product authenticity."
        ),
        "track": Track.SOFTWARE,
        "category": "Cybersecurity, Blockchain & Digital Trust",
        "industry": Industry.TECHNOLOGY,
        "expected_outcome": "DApp with smart contracts on a testnet and a mobile scanning app.",
        "tech_stack": ["Solidity", "Ethereum", "React", "IPFS"],
        "difficulty": Difficulty.HARD,
        "status": ProblemStatus.APPROVED,
    },
    {
        "org": 1,
        "title": "AI Medical Image Analysis Platform",
        "description": (
            "Build an AI-powered platform that assists radiologists in analyzing X-rays, MRIs "
            "and CT scans to detect potential abnormalities, focusing on accuracy, speed and "
            "explainability of predictions."
        ),
        "track": Track.SOFTWARE,
        "category": "HealthTech, BioTech & MedTech",
        "industry": Industry.HEALTHCARE,
        "expected_outcome": "Web platform with image upload, heatmaps and confidence scores.",
        "tech_stack": ["Python", "PyTorch", "FastAPI", "React"],
        "difficulty": Difficulty.HARD,
        "datasets": "Anonymized medical imaging dataset will be provided",
        "nda_required": True,
        "mentors_provided": True,
        "status": ProblemStatus.PENDING,
    },
    {
        "org": 2,
        "title": "IoT-Based Smart Irrigation System",
        "description": (
            "Design an IoT system for precision agriculture that monitors soil moisture, weather "
            "conditions and crop health to automate irrigation while minimizing water usage and "
            "maximizing crop yield."
        ),
        "track": Track.HARDWARE,
        "category": "IoT & Smart Devices",
        "industry": Industry.AGRICULTURE,
        "expected_outcome": "Sensor network prototype with a cloud dashboard and a farmer app.",
        "tech_stack": ["Raspberry Pi", "LoRaWAN", "Python", "React"],
        "difficulty": Difficulty.MEDIUM,
        "mentors_provided": True,
        "status": ProblemStatus.APPROVED,
    },
    {
        "org": 1,
        "title": "Robotic Rehabilitation Assistant",
        "description": (
            "Develop a robotic arm prototype that assists physical therapy patients with guided "
            "exercises, adapting to patient capabilities and tracking progress over time."
        ),
        "track": Track.HARDWARE,
        "category": "Robotics & Automation",
        "industry": Industry.HEALTHCARE,
        "expected_outcome": "Working prototype with movement assistance and patient feedback.",
        "tech_stack": ["ROS", "Python", "Arduino"],
        "difficulty": Difficulty.HARD,
        "nda_required": True,
        "mentors_provided": True,
        "status": ProblemStatus.PENDING,
    },
    {
        "org": 0,
        "title": "Real-time Fraud Detection System",
        "description": (
            "Build a machine learning system that detects fraudulent e-commerce transactions in "
            "real time, handling millions of transactions per day with minimal false positives."
        ),
        "track": Track.SOFTWARE,
        "category": "FinTech & Digital Economy",
        "industry": Industry.FINANCE,
        "expected_outcome": "Scalable fraud detection API with a detection-rate dashboard.",
        "tech_stack": ["Python", "Apache Kafka", "XGBoost", "FastAPI", "PostgreSQL"],
        "difficulty": Difficulty.HARD,
        "mentors_provided": True,
        "status": ProblemStatus.REJECTED,
        "admin_notes": "Please narrow the scope to a single payment channel.",
    },
]


async def ensure_admin(session: AsyncSession, email: str, password: str) -> User:
    users = UserRepository(session)
    admin = await users.find_by_email(email)
    if admin is not None:
        logger.info("Admin account already exists", extra={"email": email})
        return admin

    admin = await users.create(
        email=email,
        password_hash=await TokenService.hash_password_async(password),
        name="DevThon Admin",
        role=UserRole.ADMIN,
    )
    logger.info("Admin account created", extra={"email": email})
    return admin


async def _ensure_organization(session: AsyncSession, data: Dict[str, Any], password_hash: str) -> Organization:
    users = UserRepository(session)
    organizations = OrganizationRepository(session)

    user = await users.find_by_email(data["contact_email"])
    if user is None:
        user = await users.create(
            email=data["contact_email"],
            password_hash=password_hash,
            name=data["contact_person"],
            role=UserRole.ORGANIZATION,
        )
    organization = await organizations.find_by_user_id(user.id)
    if organization is None:
        organization = await organizations.create(user_id=user.id, **data)
        await organizations.set_verified(organization, True)
    return organization


async def seed_sample_data(session: AsyncSession, admin: User) -> Dict[str, int]:
    password_hash = await TokenService.hash_password_async(SAMPLE_ORG_PASSWORD)
    organizations = [
        await _ensure_organization(session, data, password_hash) for data in SAMPLE_ORGANIZATIONS
    ]

    created = 0
    for sample in SAMPLE_PROBLEMS:
        sample = dict(sample)
        organization = organizations[sample.pop("org")]
        if not category_matches_track(sample["track"], sample["category"]):
            raise ValueError(f"Sample problem has a category outside its track: {sample['title']}")

        exists = await session.execute(
            select(func.count(ProblemStatement.id)).where(
                ProblemStatement.organization_id == organization.id,
                ProblemStatement.title == sample["title"],
            )
        )
        if exists.scalar():
            continue

        reviewed = sample["status"] != ProblemStatus.PENDING
        session.add(ProblemStatement(
            organization_id=organization.id,
            contact_person=organization.contact_person,
            contact_email=organization.contact_email,
            reviewed_by=admin.id if reviewed else None,
            reviewed_at=utcnow() if reviewed else None,
            **sample,
        ))
        created += 1

    await session.flush()
    return {"organizations": len(organizations), "problems": created}


async def run_seed(
    database: Database,
    admin_email: str = config.ADMIN_EMAIL,
    admin_password: str = config.ADMIN_PASSWORD,
    reset: bool = False,
    with_samples: bool = True,
) -> Dict[str, int]:
    if reset:
        logger.warning("Dropping all tables")
        await database.drop_all()
    await database.create_all()

    async with database.session() as session:
        admin = await ensure_admin(session, admin_email, admin_password)
        summary = {"organizations": 0, "problems": 0}
        if with_samples:
            summary = await seed_sample_data(session, admin)

    logger.info("Seed complete", extra=summary)
    return summary


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the DevThon portal database")
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables first")
    parser.add_argument("--admin-only", action="store_true", help="create only the admin account")
    args = parser.parse_args(argv)

    configure_logging(config.LOG_LEVEL, json_output=config.is_production())
    config.validate_config()

    async def _run():
        database = Database(config.DATABASE_URL, echo=config.SQL_ECHO)
        try:
            await run_seed(database, reset=args.reset, with_samples=not args.admin_only)
        finally:
            await database.dispose()

    asyncio.run(_run())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""
Rules deciding which ServiceM8 jobs belong to a portal customer.

Two strategies exist:
- company: the job's company_uuid equals the customer's ServiceM8 company
- contact: the job's contact email or mobile matches the customer's
Inactive jobs never match.
"""

import re
from typing import List, Optional

from api.schemas.servicem8 import ServiceM8Job
from db.models import Customer

MATCH_BY_COMPANY = "company"
MATCH_BY_CONTACT = "contact"

_NON_DIGITS = re.compile(r"\D")


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def digits_only(phone: Optional[str]) -> str:
    return _NON_DIGITS.sub("", phone or "")


def match_job_to_company(job: ServiceM8Job, company_uuid: Optional[str]) -> bool:
    """Exact company match on an active job. An empty company never matches."""
    if not company_uuid or not job.company_uuid:
        return False
    return job.is_active and job.company_uuid == company_uuid


def match_job_to_contact(job: ServiceM8Job, email: Optional[str], phone: Optional[str]) -> bool:
    """
    Contact match on an active job.

    Email compares case-insensitively after trimming; phone compares digits
    only, matching when the job's number contains the customer's.
    """
    if not job.is_active:
        return False

    customer_email = normalize_email(email)
    if customer_email and normalize_email(job.job_contact_email) == customer_email:
        return True

    customer_phone = digits_only(phone)
    job_phone = digits_only(job.job_contact_mobile)
    return bool(customer_phone and job_phone and customer_phone in job_phone)


def filter_jobs_for_customer(
    jobs: List[ServiceM8Job],
    customer: Customer,
    strategy: str = MATCH_BY_COMPANY,
) -> List[ServiceM8Job]:
    """Keep the jobs owned by a customer, preserving ServiceM8's order."""
    if strategy == MATCH_BY_CONTACT:
        return [job for job in jobs if match_job_to_contact(job, customer.email, customer.phone)]
    return [job for job in jobs if match_job_to_company(job, customer.servicem8_company_uuid)]

"""Company and site API routes."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.organization import Company, Site
from app.schemas.reference import CompanyCreate, CompanyOut, SiteCreate, SiteOut

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=CompanyOut, status_code=status.HTTP_201_CREATED)
def create_company(payload: CompanyCreate, db: Session = Depends(get_db)):
    company = Company(**payload.model_dump())
    db.add(company)
    db.commit()
    db.refresh(company)
    logger.info("Created company '%s' (%s)", company.name, company.id)
    return company


@router.get("/", response_model=list[CompanyOut])
def list_companies(db: Session = Depends(get_db)):
    return db.query(Company).order_by(Company.name).all()


@router.post("/{company_id}/sites", response_model=SiteOut, status_code=status.HTTP_201_CREATED)
def add_site(company_id: str, payload: SiteCreate, db: Session = Depends(get_db)):
    """Add a physical location to a company."""
    company = db.query(Company).filter(Company.id == company_id).first()
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    site = Site(company_id=company_id, **payload.model_dump())
    db.add(site)
    db.commit()
    db.refresh(site)
    logger.info("Added site '%s' (%s) to company %s", site.name, site.id, company_id)
    return site


@router.get("/{company_id}/sites", response_model=list[SiteOut])
def list_sites(company_id: str, db: Session = Depends(get_db)):
    return db.query(Site).filter(Site.company_id == company_id).order_by(Site.name).all()

"""
Client management endpoints
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, Query, status

from .system import LoanbookSystem, get_system
from .schemas import (
    CreateClientRequest,
    UpdateClientRequest,
    client_summary_to_response,
    client_to_response
)


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_client(
    request: CreateClientRequest,
    system: LoanbookSystem = Depends(get_system)
):
    """Register a new client"""
    client = system.client_registry.add_client(
        name=request.name,
        phone=request.phone,
        notes=request.notes
    )
    return {"client_id": client.id, "message": "Client created successfully"}


@router.get("")
async def list_clients(
    search: Optional[str] = Query(None, description="Match on name or phone"),
    system: LoanbookSystem = Depends(get_system)
):
    """List clients by name, optionally filtered"""
    clients = system.client_registry.search_clients(search or "")
    return {"clients": [client_to_response(c) for c in clients]}


@router.get("/{client_id}")
async def get_client(
    client_id: str,
    system: LoanbookSystem = Depends(get_system)
):
    """Get client by ID"""
    client = system.client_registry.get_client(client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return client_to_response(client)


@router.put("/{client_id}")
async def update_client(
    client_id: str,
    request: UpdateClientRequest,
    system: LoanbookSystem = Depends(get_system)
):
    """Update client information"""
    client = system.client_registry.update_client(
        client_id,
        name=request.name,
        phone=request.phone,
        notes=request.notes
    )
    return client_to_response(client)


@router.delete("/{client_id}")
async def delete_client(
    client_id: str,
    system: LoanbookSystem = Depends(get_system)
):
    """Delete a client. Their loans are kept."""
    system.client_registry.delete_client(client_id)
    return {"message": "Client deleted successfully"}


@router.get("/{client_id}/summary")
async def get_client_summary(
    client_id: str,
    today: Optional[date] = Query(None),
    system: LoanbookSystem = Depends(get_system)
):
    """Client's loans, counts and outstanding debt"""
    summary = system.reporting_engine.client_summary(client_id)
    return client_summary_to_response(summary, today or date.today())

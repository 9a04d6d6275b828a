"""API endpoints for Wallet module."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_db
from src.modules.wallet.schemas import (
    BalanceChangeRequest,
    TransferRequest,
    WalletCardCreate,
    WalletCardResponse,
    WalletCardUpdate,
    WalletSummary,
    WalletTransactionResponse,
)
from src.modules.wallet.service import WalletService
from src.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.get("/cards", response_model=ApiResponse[list[WalletCardResponse]])
async def list_cards(
    active_only: bool = Query(False),
    linked_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    """List wallet cards. active_only gives the cards a sale can pay from."""
    service = WalletService(db)
    cards = await service.list_cards(active_only=active_only, linked_only=linked_only)
    return ApiResponse(
        success=True,
        data=[WalletCardResponse.model_validate(c) for c in cards],
    )


@router.get("/summary", response_model=ApiResponse[WalletSummary])
async def get_summary(db: AsyncSession = Depends(get_db)):
    service = WalletService(db)
    return ApiResponse(success=True, data=await service.get_summary())


@router.post(
    "/cards",
    response_model=ApiResponse[WalletCardResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_card(data: WalletCardCreate, db: AsyncSession = Depends(get_db)):
    service = WalletService(db)
    card = await service.create_card(data)
    return ApiResponse(
        success=True,
        message="Wallet card created successfully",
        data=WalletCardResponse.model_validate(card),
    )


@router.get("/cards/{card_id}", response_model=ApiResponse[WalletCardResponse])
async def get_card(card_id: int, db: AsyncSession = Depends(get_db)):
    service = WalletService(db)
    card = await service.get_card(card_id)
    return ApiResponse(success=True, data=WalletCardResponse.model_validate(card))


@router.patch("/cards/{card_id}", response_model=ApiResponse[WalletCardResponse])
async def update_card(
    card_id: int, data: WalletCardUpdate, db: AsyncSession = Depends(get_db)
):
    service = WalletService(db)
    card = await service.update_card(card_id, data)
    return ApiResponse(
        success=True,
        message="Wallet card updated successfully",
        data=WalletCardResponse.model_validate(card),
    )


@router.post(
    "/cards/{card_id}/top-up",
    response_model=ApiResponse[WalletTransactionResponse],
)
async def top_up_card(
    card_id: int, data: BalanceChangeRequest, db: AsyncSession = Depends(get_db)
):
    service = WalletService(db)
    transaction = await service.top_up(card_id, data.amount, data.memo)
    return ApiResponse(
        success=True,
        message="Card topped up successfully",
        data=WalletTransactionResponse.model_validate(transaction),
    )


@router.post(
    "/cards/{card_id}/withdraw",
    response_model=ApiResponse[WalletTransactionResponse],
)
async def withdraw_from_card(
    card_id: int, data: BalanceChangeRequest, db: AsyncSession = Depends(get_db)
):
    service = WalletService(db)
    transaction = await service.withdraw(card_id, data.amount, data.memo)
    return ApiResponse(
        success=True,
        message="Withdrawal recorded successfully",
        data=WalletTransactionResponse.model_validate(transaction),
    )


@router.post(
    "/cards/{card_id}/transfer",
    response_model=ApiResponse[list[WalletTransactionResponse]],
)
async def transfer_between_cards(
    card_id: int, data: TransferRequest, db: AsyncSession = Depends(get_db)
):
    service = WalletService(db)
    outgoing, incoming = await service.transfer(card_id, data.to_card_id, data.amount, data.memo)
    return ApiResponse(
        success=True,
        message="Transfer completed successfully",
        data=[
            WalletTransactionResponse.model_validate(outgoing),
            WalletTransactionResponse.model_validate(incoming),
        ],
    )


@router.get(
    "/cards/{card_id}/transactions",
    response_model=ApiResponse[list[WalletTransactionResponse]],
)
async def list_card_transactions(
    card_id: int,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    service = WalletService(db)
    transactions = await service.list_transactions(card_id, limit=limit)
    return ApiResponse(
        success=True,
        data=[WalletTransactionResponse.model_validate(t) for t in transactions],
    )

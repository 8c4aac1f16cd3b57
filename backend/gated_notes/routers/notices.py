from fastapi import APIRouter, Depends

from gated_notes.models.notice import Notice
from gated_notes.services.notices import NoticeBoard, get_notice_board

router = APIRouter()


@router.get("/", response_model=list[Notice])
async def list_notices(board: NoticeBoard = Depends(get_notice_board)) -> list[Notice]:
    """Recent user-facing notices, newest first."""
    return board.recent()

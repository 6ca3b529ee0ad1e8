"""Playback endpoints: session snapshot, event drain, menu actions, input, save.

Input the current mode does not accept (advance during a choice, a choice
index out of range, a minigame result nobody is waiting for, a save mid-jump)
answers {"ok": false} instead of an error status.
"""

from fastapi import APIRouter, Depends, Request

from backend.presenter import WebPlayer

from .models import (
    AudioBody,
    ChoiceBody,
    ContinueResponse,
    EventsResponse,
    MinigameBody,
    OkResponse,
    SaveResponse,
    SessionView,
)

router = APIRouter()


def get_player(request: Request) -> WebPlayer:
    return request.app.state.player


def _view(player: WebPlayer) -> SessionView:
    session = player.session
    machine = session.machine
    if machine is None:
        return SessionView(
            started=False,
            display=player.presenter.display,
            has_save=session.has_save(),
        )
    return SessionView(
        started=True,
        scene=machine.scene,
        mode=machine.mode.value,
        position=machine.position,
        revealing=machine.is_revealing,
        awaiting_minigame=machine.awaiting_minigame,
        choice=machine.choice,
        display=player.presenter.display,
        affinity=session.decisions.get_affinity(),
        has_save=session.has_save(),
    )


@router.get("/session", response_model=SessionView)
async def get_session(player: WebPlayer = Depends(get_player)):
    """Current scene, mode, position and text box contents."""
    return _view(player)


@router.get("/events", response_model=EventsResponse)
async def drain_events(player: WebPlayer = Depends(get_player)):
    """Presentation events since the last call (oldest first)."""
    return EventsResponse(events=player.events.drain())


@router.post("/new-game", response_model=SessionView)
async def new_game(player: WebPlayer = Depends(get_player)):
    """Reset decisions and start the first scene from the top."""
    await player.session.new_game()
    return _view(player)


@router.post("/continue", response_model=ContinueResponse)
async def continue_game(player: WebPlayer = Depends(get_player)):
    """Resume the saved bookmark (new game if there is none)."""
    resumed = await player.session.continue_game()
    return ContinueResponse(ok=True, resumed=resumed)


@router.post("/advance", response_model=OkResponse)
async def advance(player: WebPlayer = Depends(get_player)):
    """Confirm input: finish the reveal or move to the next line."""
    return OkResponse(ok=player.session.advance())


@router.post("/choice", response_model=OkResponse)
async def select_choice(body: ChoiceBody, player: WebPlayer = Depends(get_player)):
    """Pick an option of the pending choice by position."""
    return OkResponse(ok=player.session.select_choice_index(body.index))


@router.post("/minigame", response_model=OkResponse)
async def minigame_result(body: MinigameBody, player: WebPlayer = Depends(get_player)):
    """Report the intercept minigame outcome."""
    return OkResponse(ok=player.session.minigame_complete(body.success))


@router.put("/audio", response_model=OkResponse)
async def report_audio(body: AudioBody, player: WebPlayer = Depends(get_player)):
    """Client reports which music sources are currently playing."""
    player.audio.playing = list(body.playing)
    return OkResponse(ok=True)


@router.post("/save", response_model=SaveResponse)
async def save(player: WebPlayer = Depends(get_player)):
    """Bookmark the current position (refused mid-jump or mid-minigame)."""
    bookmark = player.session.save()
    return SaveResponse(ok=bookmark is not None, bookmark=bookmark)

"""
Battle commentary providers.

A provider exposes

    async request_line(player_name, enemy_name, player_move, enemy_move, outcome) -> str

and may be slow or fail; BattleSession bounds the call with a timeout and
substitutes FALLBACK_LINE, so providers are free to raise.
"""

import asyncio
import json
import os
import random
import urllib.request
from typing import Optional, Sequence


FALLBACK_LINE = "The battle rages on!"

GEMINI_URL = 'https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent?key={key}'


def _move_name(move) -> str:
    return str(getattr(move, 'value', move)).replace('_', ' ')


def build_prompt(player_name: str, enemy_name: str, player_move, enemy_move, outcome) -> str:
    return (
        f"Context: A monster battle between {player_name} and {enemy_name}.\n"
        f"Action: {player_name} used {_move_name(player_move)}, "
        f"while {enemy_name} used {_move_name(enemy_move)}.\n"
        f"Result: {_move_name(outcome)}.\n"
        "Task: Write a short, hype, 1-sentence commentary in the style of a battle announcer."
    )


class GeminiCommentary:
    """
    Commentary from the Gemini generateContent REST endpoint.

    The API key is read from the environment variable named by api_key_env.
    Without a key every request returns the fallback line immediately.
    """

    def __init__(self, model: str = 'gemini-1.5-flash', api_key_env: str = 'GEMINI_API_KEY',
                 http_timeout: float = 5.0, fallback: str = FALLBACK_LINE,
                 api_key: Optional[str] = None):
        self.model = model
        self.api_key = api_key if api_key is not None else os.environ.get(api_key_env, '')
        self.http_timeout = http_timeout
        self.fallback = fallback

    @classmethod
    def from_config(cls, config) -> 'GeminiCommentary':
        return cls(
            model=config.get('commentary', 'model', default='gemini-1.5-flash'),
            api_key_env=config.get('commentary', 'api_key_env', default='GEMINI_API_KEY'),
            http_timeout=config.get('commentary', 'http_timeout', default=5.0),
            fallback=config.get('commentary', 'fallback', default=FALLBACK_LINE),
        )

    def _post(self, prompt: str) -> str:
        body = json.dumps({'contents': [{'parts': [{'text': prompt}]}]}).encode('utf-8')
        request = urllib.request.Request(
            GEMINI_URL.format(model=self.model, key=self.api_key),
            data=body,
            headers={'Content-Type': 'application/json'},
            method='POST',
        )
        with urllib.request.urlopen(request, timeout=self.http_timeout) as response:
            data = json.loads(response.read().decode('utf-8'))
        return data['candidates'][0]['content']['parts'][0]['text'].strip()

    async def request_line(self, player_name, enemy_name, player_move, enemy_move, outcome) -> str:
        if not self.api_key:
            return self.fallback
        prompt = build_prompt(player_name, enemy_name, player_move, enemy_move, outcome)
        # urllib blocks; keep the event loop (and the match clock) running
        return await asyncio.to_thread(self._post, prompt)


class CannedCommentary:
    """Offline commentary picked from a fixed set of lines per outcome."""

    LINES = {
        'win': [
            "{player} lands a clean hit with {player_move}!",
            "{player}'s {player_move} breaks right through {enemy}'s guard!",
        ],
        'loss': [
            "{enemy} answers with {enemy_move} and {player} takes the hit!",
            "Ouch! {enemy}'s {enemy_move} connects!",
        ],
        'tie': [
            "{player} and {enemy} clash with {player_move}, nobody gives an inch!",
        ],
    }

    def __init__(self, rng: Optional[random.Random] = None, lines: Optional[dict] = None):
        self.rng = rng or random.Random()
        self.lines = lines or self.LINES

    async def request_line(self, player_name, enemy_name, player_move, enemy_move, outcome) -> str:
        choices: Sequence[str] = self.lines.get(_move_name(outcome), ()) or (FALLBACK_LINE,)
        return self.rng.choice(choices).format(
            player=player_name,
            enemy=enemy_name,
            player_move=_move_name(player_move),
            enemy_move=_move_name(enemy_move),
        )

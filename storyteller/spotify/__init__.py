"""
Spotify — authorization and playback.

  tokens.py   Session + atomic on-disk TokenStore
  oauth.py    accounts service (authorize URL, code exchange, refresh)
  auth.py     AuthCoordinator, the one owner of the session
  media.py    Track / Episode / PlaybackSnapshot
  api.py      /me/player fetch + control commands
"""

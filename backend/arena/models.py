from arena import db
import json
import time


class RoundHistory(db.Model):
    __tablename__ = 'round_history'
    id = db.Column(db.String(32), primary_key=True)  # minigame-xxxxxxxx
    game_type = db.Column(db.String(32), nullable=False, index=True)
    start_time = db.Column(db.BigInteger, nullable=True)  # epoch ms, reset when countdown ends
    ended_at = db.Column(db.Float, nullable=False, default=time.time)
    result = db.Column(db.String(32), nullable=False)  # win, timeout, draw, ended, cancelled, ...
    winner_id = db.Column(db.String(64), nullable=True)
    player_count = db.Column(db.Integer, nullable=False, default=0)
    scores = db.Column(db.Text, nullable=True)  # JSON-encoded {player_id: score}

    def to_dict(self):
        try:
            scores = json.loads(self.scores) if self.scores else {}
        except ValueError:
            scores = {}
        return {
            'id': self.id,
            'type': self.game_type,
            'start_time': self.start_time,
            'ended_at': self.ended_at,
            'result': self.result,
            'winner_id': self.winner_id,
            'player_count': self.player_count,
            'scores': scores,
        }

from league_pickem import create_app, db
from league_pickem.models import Bet, BetGroup, GroupMember, ScoringRule

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "Bet": Bet,
        "BetGroup": BetGroup,
        "GroupMember": GroupMember,
        "ScoringRule": ScoringRule,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=app.config.get("DEBUG", False))

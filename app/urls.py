from blockchain.views import bp as blockchain_bp

from .views import documents_bp, users_bp

urlpatterns = [
    ("/api/blockchain", blockchain_bp),
    ("/api/documents", documents_bp),
    ("/api/users", users_bp),
]


def register_blueprints(flask_app):
    for prefix, blueprint in urlpatterns:
        flask_app.register_blueprint(blueprint, url_prefix=prefix)

"""
Centralized Blueprint Registration
All blueprints MUST be registered inside register_all_blueprints(app)
"""


def register_all_blueprints(app):

    # Root (health, pricing)
    from agrichain.routes.root.root_routes import root_bp
    app.register_blueprint(root_bp)

    # Auth
    from agrichain.routes.auth.auth_routes import auth_bp
    app.register_blueprint(auth_bp)

    # Session store
    from agrichain.routes.session.session_routes import session_bp
    app.register_blueprint(session_bp)

    # Marketplace modules
    from agrichain.routes.market.crop_routes import crop_bp
    from agrichain.routes.market.auction_routes import auction_bp
    from agrichain.routes.market.order_routes import order_bp
    from agrichain.routes.market.rating_routes import rating_bp

    app.register_blueprint(crop_bp)
    app.register_blueprint(auction_bp)
    app.register_blueprint(order_bp)
    app.register_blueprint(rating_bp)

    # Account
    from agrichain.routes.account.wallet_routes import wallet_bp
    from agrichain.routes.account.nft_routes import nft_bp

    app.register_blueprint(wallet_bp)
    app.register_blueprint(nft_bp)

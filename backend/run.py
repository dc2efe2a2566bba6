#!/usr/bin/env python3
"""
Cipher Lab Backend Runner
Run this script to start the Flask development server
"""

import os
from app import create_app
from cipher import CipherService


def main():
    """Main function to run the Flask app"""
    # Get configuration from environment or default to development
    config_name = os.environ.get('FLASK_ENV', 'development')
    app = create_app(config_name)

    # Run the application
    print(f"🚀 Starting Cipher Lab Backend in {config_name} mode...")
    print(f"📡 Server will be available at: http://localhost:5000")
    print(f"🔐 Supported algorithms: {', '.join(CipherService.SUPPORTED_ALGORITHMS)}")
    print(f"🔧 Supported modes: {', '.join(CipherService.SUPPORTED_MODES)}")
    print(f"🗄️  Database: {app.config['SQLALCHEMY_DATABASE_URI'].split('@')[-1]}")

    app.run(
        host='0.0.0.0',
        port=5000,
        debug=app.config['DEBUG']
    )


if __name__ == '__main__':
    main()

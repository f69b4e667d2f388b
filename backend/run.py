"""Application entry point."""
import os
import click
from flask.cli import with_appcontext
from campus_attendance import create_app, db
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Create Flask app
app = create_app(os.getenv('FLASK_ENV', 'development'))

SAMPLE_USERS = [
    ('admin@campus.edu', 'admin', 'System Administrator', 'admin', 'admin123456'),
    ('labs@campus.edu', 'labs', 'Lab Manager', 'lab_manager', 'labs123456'),
    ('instructor@campus.edu', 'instructor', 'Instructor One', 'instructor', 'instructor123'),
    ('student@campus.edu', 'student', 'Student One', 'student', 'student123'),
]

SAMPLE_ENVIRONMENTS = [
    ('LAB-01', 'lab', 'Building A, floor 1', 30),
    ('AUD-A', 'auditorium', 'Main building', 200),
]

@app.cli.command()
@with_appcontext
def create_db():
    """Create database tables."""
    db.create_all()
    click.echo('Database tables created successfully!')

@app.cli.command()
@with_appcontext
def drop_db():
    """Drop all database tables."""
    if click.confirm('Are you sure you want to drop all tables?'):
        db.drop_all()
        click.echo('Database tables dropped successfully!')

def seed_sample_data():
    from campus_attendance.models import Environment, User, UserRole

    for email, username, name, role, password in SAMPLE_USERS:
        if User.query.filter_by(email=email).first():
            continue
        user = User(email=email, username=username, name=name, role=UserRole(role))
        user.set_password(password)
        db.session.add(user)

    for name, env_type, location, capacity in SAMPLE_ENVIRONMENTS:
        if Environment.query.filter_by(name=name).first():
            continue
        db.session.add(Environment(name=name, type=env_type, location=location, capacity=capacity))

    db.session.commit()

@app.cli.command()
@with_appcontext
def init_db():
    """Initialize database with sample users and environments."""
    db.create_all()
    seed_sample_data()

    click.echo('Sample data created successfully!')
    for email, _, _, role, password in SAMPLE_USERS:
        click.echo(f'  {role}: {email} / {password}')

@app.cli.command()
@with_appcontext
def reset_db():
    """Reset database completely."""
    if click.confirm('This will delete all data and recreate tables. Continue?'):
        db.drop_all()
        db.create_all()
        click.echo('Database reset complete!')

        if click.confirm('Initialize with sample data?'):
            seed_sample_data()
            click.echo('Sample data created successfully!')

if __name__ == '__main__':
    # Development server
    port = int(os.environ.get('PORT', 5000))
    host = os.environ.get('HOST', '127.0.0.1')
    debug = os.environ.get('FLASK_ENV') == 'development'

    app.run(host=host, port=port, debug=debug)

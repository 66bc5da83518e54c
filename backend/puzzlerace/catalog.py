"""Achievement definitions seeded into the database."""

ACHIEVEMENTS = [
    # Progress
    {'id': 'first_game', 'title': 'First Steps', 'description': 'Complete your first puzzle',
     'icon': 'target', 'category': 'progress', 'rarity': 'common',
     'max_progress': 1, 'reward_coins': 10, 'reward_experience': 10},
    {'id': 'games_10', 'title': 'Puzzle Novice', 'description': 'Complete 10 puzzles',
     'icon': 'medal', 'category': 'progress', 'rarity': 'common',
     'max_progress': 10, 'reward_coins': 50, 'reward_experience': 50},
    {'id': 'games_50', 'title': 'Puzzle Enthusiast', 'description': 'Complete 50 puzzles',
     'icon': 'trophy', 'category': 'progress', 'rarity': 'rare',
     'max_progress': 50, 'reward_coins': 200, 'reward_experience': 150},
    {'id': 'games_100', 'title': 'Puzzle Master', 'description': 'Complete 100 puzzles',
     'icon': 'crown', 'category': 'milestone', 'rarity': 'epic',
     'max_progress': 100, 'reward_coins': 500, 'reward_experience': 300},
    {'id': 'games_500', 'title': 'Puzzle Grandmaster', 'description': 'Complete 500 puzzles',
     'icon': 'ribbon', 'category': 'milestone', 'rarity': 'legendary',
     'max_progress': 500, 'reward_coins': 1000, 'reward_experience': 500},
    # Difficulty
    {'id': 'easy_master', 'title': 'Easy Mode Expert', 'description': 'Complete 20 easy puzzles',
     'icon': 'smile', 'category': 'progress', 'rarity': 'common',
     'max_progress': 20, 'reward_coins': 30, 'reward_experience': 30},
    {'id': 'hard_challenger', 'title': 'Hard Challenger', 'description': 'Complete 10 hard puzzles',
     'icon': 'flex', 'category': 'progress', 'rarity': 'rare',
     'max_progress': 10, 'reward_coins': 100, 'reward_experience': 100},
    {'id': 'expert_elite', 'title': 'Expert Elite', 'description': 'Complete 5 expert puzzles',
     'icon': 'fire', 'category': 'milestone', 'rarity': 'epic',
     'max_progress': 5, 'reward_coins': 200, 'reward_experience': 200},
    # Speed
    {'id': 'speed_demon', 'title': 'Speed Demon', 'description': 'Finish a medium puzzle in under 3 minutes',
     'icon': 'bolt', 'category': 'performance', 'rarity': 'rare',
     'max_progress': 1, 'reward_coins': 150, 'reward_experience': 100},
    {'id': 'lightning_fast', 'title': 'Lightning Fast', 'description': 'Finish an easy puzzle in under 1 minute',
     'icon': 'bolt', 'category': 'performance', 'rarity': 'epic',
     'max_progress': 1, 'reward_coins': 200, 'reward_experience': 150},
    # Technique
    {'id': 'perfectionist', 'title': 'Perfectionist', 'description': 'Finish a puzzle in the minimum number of moves',
     'icon': 'gem', 'category': 'performance', 'rarity': 'legendary',
     'max_progress': 1, 'reward_coins': 300, 'reward_experience': 200},
    {'id': 'efficient_solver', 'title': 'Efficient Solver',
     'description': 'Three times in a row, use at most 1.5 moves per piece',
     'icon': 'brain', 'category': 'performance', 'rarity': 'epic',
     'max_progress': 3, 'reward_coins': 250, 'reward_experience': 180},
    # Special
    {'id': 'first_creation', 'title': 'First Creation', 'description': 'Create your first custom puzzle',
     'icon': 'palette', 'category': 'special', 'rarity': 'common',
     'max_progress': 1, 'reward_coins': 50, 'reward_experience': 30},
    {'id': 'consecutive_days', 'title': 'Persistence', 'description': 'Complete a puzzle 7 days in a row',
     'icon': 'calendar', 'category': 'special', 'rarity': 'rare',
     'max_progress': 7, 'reward_coins': 200, 'reward_experience': 150},
    {'id': 'weekend_warrior', 'title': 'Weekend Warrior', 'description': 'Complete a puzzle on a weekend',
     'icon': 'beach', 'category': 'special', 'rarity': 'epic',
     'max_progress': 1, 'reward_coins': 100, 'reward_experience': 80},
]
